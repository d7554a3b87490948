"""
API route modules.

This package contains subrouters for:
- Auth: merchant registration, login, refresh, logout and current user
- Users: merchant user CRUD and role assignment
- Master data: product configs and their bills of materials
- Inventory: raw materials, finished goods and tag in/out scanning
- Procurement: suppliers, procurement requests and WhatsApp notifications
- Orders: customers, orders and per-item fulfilment
- Production: workers, manufacturing orders and the Kanban board
- Catalogues: shareable catalogues plus the public catalogue routes
- Dashboard: summary counts, critical stock and the activity log
- Reports: CSV/XLSX/PDF exports

Routers are included from karigar.api.main (under the /api/v1 prefix).
"""

"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for each domain area. They assume the
AsyncSession is bound to a merchant (karigar.core.deps.get_merchant_session).
Simple CRUD methods commit; methods used inside service workflows only flush and
leave the commit to the service.
"""

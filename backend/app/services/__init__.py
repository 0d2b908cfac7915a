# Services package init
"""
Caisse Backend — Services Layer
=================================

What:  Business logic between routes (HTTP) and the persistence layer.

Service Inventory:
    - AuthService: signup and login
    - UserService: account creation, scoped listing, deletion, bootstrap admin
    - SaleService: sale normalization, upsert, scoped listing, deletion

Each service is a stateless singleton; the Database handle is passed to
every call, so tests can hand in a throwaway database.
"""

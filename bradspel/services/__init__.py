"""
Bradspel Backend — Services Layer
==================================

What:  Business logic between routes (HTTP) and the database.
How:   Services receive an AsyncSession from the route, apply the rules and
       own the transaction boundary (database.unit_of_work). Each module
       exposes a singleton the routes import.

Service Inventory:
    - LendingService: lend, return and table-order workflow
    - GameService:    catalog reads, history, import, cover images
    - UserService:    user lookup and guest resolution by phone
    - BadgeService:   idempotent badge awards with notifications
    - AuthService:    passwords, access tokens, refresh token rotation
    - StorageService: image upload validation and storage
"""

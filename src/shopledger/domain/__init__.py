"""Domain layer for shopledger.

Services are imported from their modules directly; this package only exposes
the entity and error modules so that the database layer can import them
without pulling in the services.
"""

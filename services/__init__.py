"""Application services (business logic between the API layer and the stores)."""

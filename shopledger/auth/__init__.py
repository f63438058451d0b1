"""Authentication: JWT cookies, role dependencies, route middleware."""

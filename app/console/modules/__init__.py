"""
Feature modules live under this package.

Each module owns its routes and templates and talks to the platform API only through
`app.console.queries` (cached reads, mutations with invalidation).
"""

"""rowgate: generic CRUD over relational tables with a query DSL and row-level ACL."""

__version__ = "0.1.0"

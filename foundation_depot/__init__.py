"""Foundation Depot.

A generic data-access engine over async SQLAlchemy/SQLModel: given a declared
record type, a ``Depot`` provides create/read/update/delete and paginated view
operations without per-type boilerplate.

Core subpackages
----------------

- ``foundation_depot.core.database``: record bases, registry, validation
  rules, query composition (filters, ordering, pagination) and the depots
  with their graph store, sanitizer and update reconciler.
- ``foundation_depot.core``: settings, logging and optional tracing.
"""

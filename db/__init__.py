"""
db/ - Database Layer
====================
Handles PostgreSQL connection pooling, transactional sessions and schema
initialization. This layer is the lowest in the architecture and has no
dependencies on other layers.
"""

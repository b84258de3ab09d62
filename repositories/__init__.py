"""
repositories/ - Data Access Layer
==================================
Each repository encapsulates all SQL queries for a specific domain entity.
Repositories run their statements on a DbSession supplied by the caller and
return domain model objects; they never commit or release anything.
"""

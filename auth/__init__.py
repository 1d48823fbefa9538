"""auth/ -- Authentication and authorization package for Gatehouse.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/ or core/ (core.config only for type checking).
api/ imports from auth/, not the other way around.
"""

"""auth/ -- Authentication and authorization package for TodoAuth.

Layer rule: auth/ imports only stdlib, third-party libraries, core/ and
store/keyed.py. It does NOT import from api/ or todo/.
api/ imports from auth/, not the other way around.
"""

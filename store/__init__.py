"""store/ -- Process-lifetime keyed containers for TodoAuth.

Layer rule: store/keyed.py imports only stdlib. store/datastore.py composes
the domain stores from auth/ and todo/; nothing in auth/ or todo/ imports it.
"""

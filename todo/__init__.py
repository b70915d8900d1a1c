"""todo/ -- Todo item resource: domain dataclass and keyed store.

Layer rule: todo/ imports only stdlib and store/keyed.py. It does NOT import
from api/ or auth/.
"""

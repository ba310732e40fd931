"""addresses/ -- User-scoped address book (shipping and billing).

Layer rule: imports only stdlib, third-party libraries, core/, and the
engine helper from auth/store.py. Ownership is enforced in every query by
the user_id column; routes pass the authenticated user's id, never a
client-supplied one.
"""

"""auth/ -- Authentication and session package for E-Store.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/, addresses/, or client/.
api/ imports from auth/, not the other way around.
"""

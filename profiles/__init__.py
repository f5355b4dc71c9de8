"""profiles/ -- Profile read/update for already-authenticated users.

Layer rule: profiles/ imports from auth/ and core/ only. It never checks
sessions itself -- routes call it after the auth dependency has resolved
the caller.
"""

"""auth/ -- Credential hashing, token lifecycle and account orchestration.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/ or core/. Configuration arrives as constructor
arguments; api/ and main.py import from auth/, not the other way around.
"""

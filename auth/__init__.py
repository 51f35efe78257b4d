"""auth/ -- Authentication and authorization package for the library service.

Components: passwords (hasher), tokens (codec), sessions (session directory),
guard (access guard), service (register/login/logout), store (users table).

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/, core/, or catalog/. Configuration arrives
through constructor arguments wired up in api/main.py.
api/ imports from auth/, not the other way around.
"""

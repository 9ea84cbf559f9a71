"""auth/ -- Authentication package for Tag Admin.

Token issuance (tokens), the cache-backed session registry (sessions),
CAPTCHA challenges (captcha), the credential store (store) and the
orchestrating AuthService (service).

Layer rule: auth/ imports from core/ and cache/ only. It does NOT import from
api/ or tags/. api/ imports from auth/, not the other way around.
"""

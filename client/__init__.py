"""client/ -- Python client for the E-Store API and its session layer.

Pieces, leaves first:
  errors.py   -- ErrorResponse variants and the ClientError hierarchy
  session.py  -- durable SessionStore and the SessionContext mutation point
  api.py      -- ApiClient: attaches the bearer token, reacts to 401
  forms.py    -- login/signup form controllers with in-flight suppression

Layer rule: client/ imports from core/ (for ClientSettings) and third-party
libraries only. It never imports api/ or auth/ -- it talks HTTP.
"""

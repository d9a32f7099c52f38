"""stackinit -- bootstrap a Django REST Framework + React (Vite) project.

Installs the Python and Node toolchains, generates both framework skeletons
with their own generators, rewires the generated Django settings to read from
``.env`` (CORS, JWT auth via simplejwt) and writes starter docs.
"""

__version__ = "0.1.0"

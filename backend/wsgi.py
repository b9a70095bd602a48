# backend/wsgi.py
from polimarket import create_app

app = create_app()

# backend/wsgi.py
from halistock import create_app

app = create_app()

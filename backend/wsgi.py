# backend/wsgi.py
from pdv import create_app

app = create_app()

# backend/wsgi.py
from paintledger import create_app

app = create_app()

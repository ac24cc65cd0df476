# backend/wsgi.py
from giftdesk import create_app

app = create_app()

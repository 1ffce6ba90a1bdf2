# wsgi.py: entry for WSGI servers, e.g. `gunicorn wsgi:app`
from logging_utils import setup_logging
from settings import load_settings
from webapp import create_app

settings = load_settings()
setup_logging(settings.log_level)
app = create_app(settings)

import os
from pathlib import Path
from dotenv import load_dotenv
from django.core.wsgi import get_wsgi_application

# Load .env file from project root
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR.parent / '.env')

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'coursework.settings')
application = get_wsgi_application()

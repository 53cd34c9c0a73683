"""
Persistence layer. `storage` is the process-wide DBStorage; create_app
points it at the configured DATABASE_URL and creates the tables.
"""
from dotenv import load_dotenv

from models.db_storage import DBStorage

load_dotenv()

storage = DBStorage()

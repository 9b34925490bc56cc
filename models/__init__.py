"""
Persistence package. ``storage`` is the process-wide DBStorage; the app
factory rebinds it to the configured DATABASE_URL and creates the tables.
"""
from models.db_storage import DBStorage

storage = DBStorage()

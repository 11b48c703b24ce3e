"""
Models package: exposes the process-wide DBStorage instance.
The application factory calls storage.reload() with the configured URL.
"""
from models.db_storage import DBStorage

storage = DBStorage()

from models.db_storage import DBStorage

# Engine is bound by create_app() via storage.configure(); see api/__init__.py
storage = DBStorage()

from models.db_storage import DBStorage

# Bound to a database by create_app() through storage.reload(DATABASE_URL)
storage = DBStorage()

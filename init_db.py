# init_db.py
from app import app, init_db

if __name__ == "__main__":
    init_db()
    print("Database initialized, all tables are ready!")
    print(f"Import user: {app.config['IMPORT_USER_EMAIL']}")

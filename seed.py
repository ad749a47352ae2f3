# seed.py
import os

from app import app, db
from import_pipeline import ImportOptions, run_import
from persistence import SqlAlchemyGateway

SAMPLE_CSV = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'sample_data', 'mood_log.csv')


def seed(path=SAMPLE_CSV):
    """Reset the database and fill it by importing the sample export."""
    with open(path, encoding='utf-8-sig') as f:
        document = f.read()

    with app.app_context():
        db.drop_all()
        db.create_all()
        return run_import(
            document,
            ImportOptions(),
            gateway=SqlAlchemyGateway(),
            user_email=app.config['IMPORT_USER_EMAIL'],
        )


if __name__ == "__main__":
    result = seed()
    print(f"\nSeeded {result.imported_count} mood entries ({result.failed_count} skipped).")
    for diagnostic in result.diagnostics:
        print(f"  - {diagnostic}")

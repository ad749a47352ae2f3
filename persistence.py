from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from import_pipeline import PersistenceError
from models import MoodEntry, User


class SqlAlchemyGateway:
    """Stores imported entries with the app's Flask-SQLAlchemy session.

    Each entry is committed on its own so a rejected row never rolls back
    the ones stored before it.
    """

    def __init__(self, session=None):
        self.session = session or db.session

    def ensure_user(self, email, name='Default User'):
        user = self.session.query(User).filter_by(email=email).first()
        if user is None:
            user = User(email=email, name=name)
            self.session.add(user)
            self.session.commit()
            current_app.logger.info('Created import user %s', email)
        return user

    def insert_mood_entry(self, entry):
        row = MoodEntry(
            user_id=entry.user_id,
            mood=entry.mood,
            note=entry.note,
            tags=entry.tags,
            sleep_hours=entry.sleep_hours,
            medication=entry.medication,
            emotions=entry.emotions,
            timestamp=entry.timestamp,
        )
        try:
            self.session.add(row)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise PersistenceError(f'database rejected the entry ({exc.__class__.__name__})') from exc
        return row

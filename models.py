from extensions import db
from datetime import datetime


# ============================
# USER MODEL
# ============================
class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False, default='Default User')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationship
    mood_entries = db.relationship('MoodEntry', backref='user', lazy=True)


# ============================
# MOOD ENTRY MODEL
# ============================
class MoodEntry(db.Model):
    __tablename__ = 'mood_entries'
    __table_args__ = (
        db.CheckConstraint('mood >= 0 AND mood <= 10', name='mood_range'),
        db.Index('user_timestamp_idx', 'user_id', 'timestamp'),
    )

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)

    mood = db.Column(db.Integer, nullable=False)
    note = db.Column(db.Text)
    tags = db.Column(db.JSON, nullable=False, default=list)

    sleep_hours = db.Column(db.Float)
    medication = db.Column(db.Float)
    emotions = db.Column(db.Text)

    # Day the mood was logged for (midnight of the imported date)
    timestamp = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'mood': self.mood,
            'note': self.note,
            'tags': self.tags or [],
            'sleep_hours': self.sleep_hours,
            'medication': self.medication,
            'emotions': self.emotions,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
        }

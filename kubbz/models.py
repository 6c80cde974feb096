from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from shared.lifecycle import derive_status, utcnow

db = SQLAlchemy()


def _iso(value):
    return value.isoformat() if value else None


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(100), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)

    # Leaderboard
    points = db.Column(db.Integer, default=0, nullable=False)
    season_points = db.Column(db.Integer, default=0, nullable=False)

    # Profile
    bio = db.Column(db.Text, nullable=True)
    phone = db.Column(db.String(50), nullable=True)
    avatar = db.Column(db.Text, nullable=True)  # URL or inline data URI

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    registrations = db.relationship('Registration', back_populates='user')
    wins = db.relationship('Winner', back_populates='user', cascade='all, delete-orphan')
    images = db.relationship('GalleryImage', back_populates='uploader', cascade='all, delete-orphan')

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def role(self) -> str:
        return 'admin' if self.is_admin else 'user'

    def to_dict(self, include_private: bool = False):
        data = {
            'id': self.id,
            'username': self.username,
            'points': self.points or 0,
            'season_points': self.season_points or 0,
            'avatar': self.avatar,
            'role': self.role,
            'is_admin': self.is_admin,
        }
        if include_private:
            data.update({
                'email': self.email,
                'bio': self.bio,
                'phone': self.phone,
                'created_at': _iso(self.created_at),
            })
        return data


class Tournament(db.Model):
    __tablename__ = 'tournaments'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    location = db.Column(db.String(255), nullable=True)
    maps_link = db.Column(db.String(500), nullable=True)

    start_date = db.Column(db.DateTime, nullable=False, index=True)
    end_date = db.Column(db.DateTime, nullable=False)
    registration_deadline = db.Column(db.DateTime, nullable=False)

    max_participants = db.Column(db.Integer, nullable=False)
    # Cache of count(registrations); only the ledger writes it
    current_participants = db.Column(db.Integer, nullable=False, default=0)
    fee = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    registrations = db.relationship(
        'Registration',
        back_populates='tournament',
        cascade='all, delete-orphan',
        passive_deletes=True
    )

    __table_args__ = (
        db.CheckConstraint('max_participants >= 1', name='ck_tournament_capacity'),
        db.CheckConstraint('current_participants >= 0', name='ck_tournament_counter'),
        db.CheckConstraint('fee >= 0', name='ck_tournament_fee'),
    )

    def status_at(self, now):
        return derive_status(now, self.start_date, self.end_date)

    def to_dict(self, now=None):
        now = now or utcnow()
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'location': self.location,
            'maps_link': self.maps_link,
            'start_date': _iso(self.start_date),
            'end_date': _iso(self.end_date),
            'registration_deadline': _iso(self.registration_deadline),
            'max_participants': self.max_participants,
            'current_participants': self.current_participants,
            'fee': float(self.fee or 0),
            'status': self.status_at(now).value,
            'registration_open': now <= self.registration_deadline,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }


class Registration(db.Model):
    __tablename__ = 'tournament_registrations'

    id = db.Column(db.Integer, primary_key=True)
    tournament_id = db.Column(
        db.Integer,
        db.ForeignKey('tournaments.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    user_id = db.Column(
        db.Integer,
        db.ForeignKey('users.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    team_name = db.Column(db.String(100), nullable=True)
    registration_date = db.Column(db.DateTime, default=utcnow, nullable=False)

    tournament = db.relationship('Tournament', back_populates='registrations')
    user = db.relationship('User', back_populates='registrations')

    __table_args__ = (
        db.UniqueConstraint('tournament_id', 'user_id', name='unique_registration_per_tournament'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'tournament_id': self.tournament_id,
            'user_id': self.user_id,
            'team_name': self.team_name,
            'registration_date': _iso(self.registration_date),
        }


class Winner(db.Model):
    __tablename__ = 'winners'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    tournament_id = db.Column(
        db.Integer,
        db.ForeignKey('tournaments.id', ondelete='SET NULL'),
        nullable=True
    )
    season_number = db.Column(db.Integer, nullable=True)
    win_date = db.Column(db.Date, nullable=False, index=True)
    picture_url = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    user = db.relationship('User', back_populates='wins')
    tournament = db.relationship('Tournament')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'tournament_id': self.tournament_id,
            'season_number': self.season_number,
            'win_date': _iso(self.win_date),
            'picture_url': self.picture_url,
            'username': self.user.username if self.user else None,
            'avatar': self.user.avatar if self.user else None,
            'tournament_name': self.tournament.name if self.tournament else None,
        }


class GalleryImage(db.Model):
    __tablename__ = 'gallery_images'

    id = db.Column(db.Integer, primary_key=True)
    url = db.Column(db.String(500), nullable=False)
    caption = db.Column(db.String(500), nullable=True)
    uploaded_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    file_name = db.Column(db.String(255), nullable=True)
    file_size = db.Column(db.Integer, nullable=True)
    mime_type = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    uploader = db.relationship('User', back_populates='images')

    def to_dict(self):
        return {
            'id': self.id,
            'url': self.url,
            'caption': self.caption,
            'uploaded_by': self.uploaded_by,
            'uploader_name': self.uploader.username if self.uploader else None,
            'file_name': self.file_name,
            'file_size': self.file_size,
            'mime_type': self.mime_type,
            'created_at': _iso(self.created_at),
        }

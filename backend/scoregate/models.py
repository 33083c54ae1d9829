from scoregate import db

IDENTITY_MAX_LENGTH = 64
DEVICE_ID_MAX_LENGTH = 128


class GameSession(db.Model):
    __tablename__ = 'game_session'
    id = db.Column(db.Integer, primary_key=True)
    token = db.Column(db.String(64), unique=True, nullable=False, index=True)
    player_identity = db.Column(db.String(IDENTITY_MAX_LENGTH), nullable=False)
    seed = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.Float, nullable=False, index=True)  # epoch seconds

    def to_dict(self):
        return {
            'token': self.token,
            'player_identity': self.player_identity,
            'seed': self.seed,
            'created_at': self.created_at,
        }


class LeaderboardEntry(db.Model):
    __tablename__ = 'leaderboard_entry'
    id = db.Column(db.Integer, primary_key=True)
    player_identity = db.Column(db.String(IDENTITY_MAX_LENGTH), unique=True, nullable=False, index=True)
    # Overwritten on every accepted submission
    player_device_id = db.Column(db.String(DEVICE_ID_MAX_LENGTH), nullable=True)
    highest_score = db.Column(db.Integer, nullable=False, default=0, index=True)
    last_score = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.Float, nullable=False)
    updated_at = db.Column(db.Float, nullable=False)

    def to_dict(self):
        return {
            'player_identity': self.player_identity,
            'player_device_id': self.player_device_id,
            'highest_score': self.highest_score,
            'last_score': self.last_score,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }

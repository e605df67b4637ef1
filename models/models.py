from flask_sqlalchemy import SQLAlchemy

from models.schemas import utcnow

db = SQLAlchemy()


# ================= USER MODEL =================
class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True)
    username = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(20), nullable=False, default='operator')   # admin / operator
    name = db.Column(db.String(120), nullable=False)
    last_login = db.Column(db.DateTime)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        db.CheckConstraint("role IN ('admin', 'operator')", name='ck_users_role'),
    )

    def __repr__(self):
        return f'<User {self.username} | {self.role} | Active={self.is_active}>'


# ================= CRIMINAL RECORD MODEL =================
class CriminalRecord(db.Model):
    __tablename__ = 'criminal_records'

    id = db.Column(db.String(36), primary_key=True)

    # ===== Person =====
    name = db.Column(db.Text, nullable=False, index=True)
    age = db.Column(db.Integer, nullable=False)
    gender = db.Column(db.String(10), nullable=False)
    address = db.Column(db.Text)
    photo = db.Column(db.Text)   # data:<mime>;base64,<payload>

    # ===== Case =====
    crime_type = db.Column(db.String(100), nullable=False, index=True)
    fir_number = db.Column(db.String(50), index=True)
    case_status = db.Column(db.String(20), nullable=False, default='open', index=True)
    arrest_date = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        db.CheckConstraint('age > 0 AND age <= 150', name='ck_criminal_records_age'),
    )

    def __repr__(self):
        return f'<CriminalRecord {self.name} | {self.crime_type} | {self.case_status}>'


# ================= FIR MODEL =================
class FirRecord(db.Model):
    __tablename__ = 'fir_records'

    id = db.Column(db.String(36), primary_key=True)
    fir_number = db.Column(db.String(50), unique=True, nullable=False, index=True)

    # weak link: deleting the criminal record clears it
    criminal_id = db.Column(
        db.String(36),
        db.ForeignKey('criminal_records.id', ondelete='SET NULL'),
        index=True,
    )

    fir_date = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    description = db.Column(db.Text, nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f'<FirRecord {self.fir_number} | Criminal {self.criminal_id}>'

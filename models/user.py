from models.db import db
from utils.timeutil import utc_now

# association table for many-to-many User <-> Role
user_roles = db.Table(
    "user_roles",
    db.Column("user_id", db.Integer, db.ForeignKey("users.id"), primary_key=True),
    db.Column("role_id", db.Integer, db.ForeignKey("roles.id"), primary_key=True),
)

# user -> favourite facilities
user_favorites = db.Table(
    "user_favorites",
    db.Column("user_id", db.Integer, db.ForeignKey("users.id"), primary_key=True),
    db.Column("facility_id", db.Integer, db.ForeignKey("facilities.id"), primary_key=True),
    db.Column("created_at", db.DateTime, default=utc_now, nullable=False),
)

class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(50), nullable=True)
    phone_number = db.Column(db.String(30), nullable=True)

    status = db.Column(db.String(20), nullable=False, default="active")
    # status values: active, banned

    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    roles = db.relationship("Role", secondary=user_roles, back_populates="users")
    favorites = db.relationship("Facility", secondary=user_favorites, lazy="select")

    def has_role(self, name: str) -> bool:
        return any(r.name == name for r in self.roles)

class Role(db.Model):
    __tablename__ = "roles"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), unique=True, nullable=False)  # USER, FACILITY_OWNER, ADMIN

    users = db.relationship("User", secondary=user_roles, back_populates="roles")

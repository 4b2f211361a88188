from models import db
from models.user import Role

DEFAULT_ROLES = ["guest", "manager", "admin"]

def seed_roles():
    existing = {r.name for r in Role.query.all()}
    for name in DEFAULT_ROLES:
        if name not in existing:
            db.session.add(Role(name=name))
    db.session.commit()

def grant_role(user, name: str) -> bool:
    """Attach role ``name`` to ``user``; returns False if it was already held."""
    role = Role.query.filter_by(name=name).first()
    if not role:
        role = Role(name=name)
        db.session.add(role)
    if role in user.roles:
        return False
    user.roles.append(role)
    db.session.commit()
    return True

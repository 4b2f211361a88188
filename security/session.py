import hashlib
import logging
import secrets
from datetime import datetime, timedelta
from flask import request, current_app

from models import db
from models.session import Session

logger = logging.getLogger(__name__)

def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()

def cookie_name() -> str:
    return current_app.config.get("AUTH_COOKIE_NAME", "hotel_session")

def start_session(user_id: int) -> str:
    """
    Persist a login session and return the raw token for the cookie.
    Only its hash is stored.
    """
    raw_token = secrets.token_urlsafe(32)
    lifetime = current_app.config.get("SESSION_LIFETIME_SECONDS", 28800)

    db.session.add(Session(
        user_id=user_id,
        token_hash=_hash_token(raw_token),
        expires_at=datetime.utcnow() + timedelta(seconds=lifetime),
        ip=request.headers.get("X-Forwarded-For", request.remote_addr),
        user_agent=(request.headers.get("User-Agent") or "")[:255],
    ))
    db.session.commit()
    return raw_token

def resolve_session():
    """Return the live Session for the request cookie, touching last_seen_at."""
    raw_token = request.cookies.get(cookie_name())
    if not raw_token:
        return None

    sess = Session.query.filter_by(token_hash=_hash_token(raw_token), revoked=False).first()
    if not sess:
        return None

    now = datetime.utcnow()
    idle = timedelta(seconds=current_app.config.get("IDLE_TIMEOUT_SECONDS", 1800))
    last_seen = sess.last_seen_at or sess.created_at
    if sess.expires_at <= now or last_seen + idle <= now:
        logger.debug("Session %s for user %s expired", sess.id, sess.user_id)
        return None

    sess.last_seen_at = now
    db.session.commit()
    return sess

def end_session(raw_token: str) -> bool:
    if not raw_token:
        return False
    sess = Session.query.filter_by(token_hash=_hash_token(raw_token)).first()
    if not sess:
        return False
    sess.revoked = True
    db.session.commit()
    return True

def end_all_sessions(user_id: int) -> int:
    count = (
        Session.query
        .filter_by(user_id=user_id, revoked=False)
        .update({"revoked": True})
    )
    db.session.commit()
    return count

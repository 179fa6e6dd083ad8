"""Session routes for operators signed in through Firebase Authentication."""

from firebase_admin import auth, firestore
from flask import current_app, jsonify, request, session
from flask_wtf.csrf import generate_csrf

from padelrank.constants import SESSION_IS_ADMIN, SESSION_USER_ID, USERS_COLLECTION
from padelrank.errors import AuthenticationError, NotFoundError, ValidationError

from . import bp

ADMIN_ROLES = ("superadmin",)


@bp.route("/session_login", methods=["POST"])
def session_login():
    """
    This endpoint is called from the client-side after a successful Firebase login.
    It receives the ID token, verifies it, and creates a server-side session.
    """
    id_token = (request.get_json(silent=True) or {}).get("idToken")
    if not id_token:
        raise ValidationError("An ID token is required.")

    try:
        decoded_token = auth.verify_id_token(id_token)
    except Exception as e:
        current_app.logger.error(f"Error during session login: {e}")
        raise AuthenticationError("Invalid token.") from e

    uid = decoded_token["uid"]
    db = firestore.client()
    user_doc = db.collection(USERS_COLLECTION).document(uid).get()
    if not user_doc.exists:
        raise NotFoundError("User not found in Firestore.")

    user_info = user_doc.to_dict() or {}
    # The CSRF token issued before sign-in stays valid for the new session.
    session[SESSION_USER_ID] = uid
    session[SESSION_IS_ADMIN] = user_info.get("role") in ADMIN_ROLES
    current_app.logger.info(f"Operator {uid} signed in")
    return jsonify({"status": "success", "isAdmin": session[SESSION_IS_ADMIN]})


@bp.route("/logout", methods=["POST"])
def logout():
    """
    The actual logout is handled by the Firebase client-side SDK.
    This route is for clearing any server-side session info if needed.
    """
    session.clear()
    return jsonify({"status": "success"})


@bp.route("/csrf_token")
def csrf_token():
    """Issue a CSRF token for the client to send back in an X-CSRFToken header."""
    return jsonify({"csrfToken": generate_csrf()})

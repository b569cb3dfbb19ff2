# imports from flask
from datetime import datetime
import logging
import os

from flask import jsonify, request
from flask.cli import AppGroup
from flask_cors import CORS

# import "objects" from "this" project
from app import app, db, login_manager

# API endpoints
from api.accounts import accounts_api
from api.social import social_api
from api.chats import chats_api

# database models
from model.user import User
from model.social import Chat, ChatMember, Message  # noqa: F401  registers tables for create_all
from social import accounts, reconcile, store
from social.errors import Conflict, SocialError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# ============================================================================
# CORS CONFIGURATION
# ============================================================================
CORS(
    app,
    supports_credentials=True,
    origins=app.config['CORS_ORIGINS'],
    allow_headers=["Content-Type", "Authorization", "X-Origin"],
    expose_headers=["Set-Cookie"],
    methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
)

# ============================================================================
# REGISTER API BLUEPRINTS
# ============================================================================
app.register_blueprint(accounts_api)
app.register_blueprint(social_api)
app.register_blueprint(chats_api)

# ============================================================================
# FLASK-LOGIN CONFIGURATION
# ============================================================================

@login_manager.user_loader
def load_user(user_id):
    return store.find_one(User, User.id == int(user_id))

# ============================================================================
# API HEALTH CHECK & ROOT
# ============================================================================

@app.route('/api/health', methods=['GET'])
def health_check():
    """API health check endpoint"""
    return jsonify({
        "status": "ok",
        "message": "Backend is running",
        "timestamp": datetime.utcnow().isoformat()
    }), 200

# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.errorhandler(SocialError)
def social_error(e):
    if e.status >= 500:
        logger.error(f"{e.kind} on {request.method} {request.path}: {e.message}")
    return jsonify(e.to_dict()), e.status

@app.errorhandler(404)
def page_not_found(e):
    return jsonify({'error': 'NotFound', 'message': 'API endpoint not found'}), 404

@app.errorhandler(500)
def internal_error(e):
    return jsonify({'error': 'InternalError', 'message': 'Internal server error'}), 500

# ============================================================================
# CLI COMMANDS
# ============================================================================

custom_cli = AppGroup('custom', help='Custom commands')

DEMO_USERS = [
    ("alice", "alice@example.com", True),
    ("bob", "bob@example.com", False),
    ("carol", "carol@example.com", False),
]

@custom_cli.command('generate_data')
def generate_data():
    """Create tables and a few demo accounts (password: 123456)"""
    db.create_all()
    for username, email, is_private in DEMO_USERS:
        try:
            user = accounts.register(username, email, os.environ.get('DEFAULT_PASSWORD') or '123456')
        except Conflict:
            logger.info(f"User {username} already exists")
            continue
        if is_private:
            user.is_private = True
            store.save(user)
        logger.info(f"Created demo user {username}")

@custom_cli.command('reconcile')
def reconcile_command():
    """Heal asymmetric follow pairs and stale last-message pointers"""
    report = reconcile.run()
    for key, value in report.to_dict().items():
        print(f"{key}: {value}")

app.cli.add_command(custom_cli)

# ============================================================================
# RUN APPLICATION
# ============================================================================

if __name__ == "__main__":
    with app.app_context():
        db.create_all()
    host = "0.0.0.0"
    port = app.config['FLASK_PORT']
    print(f"Server running: http://localhost:{port}")
    print(f"API endpoints: http://localhost:{port}/api")
    app.run(debug=True, host=host, port=port, use_reloader=False)

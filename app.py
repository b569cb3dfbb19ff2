from flask import Flask
from flask_login import LoginManager
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from dotenv import load_dotenv
import os

# Load environment variables from .env file
load_dotenv()

# Setup of key Flask object (app)
app = Flask(__name__)

# Configure Flask Port, default to 8306 which is same as Docker setup
app.config['FLASK_PORT'] = int(os.environ.get('FLASK_PORT') or 8306)

# Configure Flask to handle JSON with UTF-8 encoding versus default ASCII
app.config['JSON_AS_ASCII'] = False  # Allow emojis, non-ASCII characters in JSON responses

# Initialize Flask-Login object, identities come from the JWT (see api/jwt_authorize.py)
login_manager = LoginManager()
login_manager.init_app(app)

# Browser settings
SECRET_KEY = os.environ.get('SECRET_KEY') or 'SECRET_KEY'  # secret key for session management and JWT signing
SESSION_COOKIE_NAME = os.environ.get('SESSION_COOKIE_NAME') or 'sess_linkify'
JWT_TOKEN_NAME = os.environ.get('JWT_TOKEN_NAME') or 'jwt_linkify'
app.config['SECRET_KEY'] = SECRET_KEY
app.config['SESSION_COOKIE_NAME'] = SESSION_COOKIE_NAME
app.config['JWT_TOKEN_NAME'] = JWT_TOKEN_NAME
app.config['JWT_EXPIRY_HOURS'] = int(os.environ.get('JWT_EXPIRY_HOURS') or 12)

# CORS origins, comma separated
app.config['CORS_ORIGINS'] = [
    origin.strip()
    for origin in (os.environ.get('CORS_ORIGINS') or 'http://localhost:4500,http://localhost:3000').split(',')
    if origin.strip()
]

# Database settings
dbName = 'linkify'
DB_ENDPOINT = os.environ.get('DB_ENDPOINT') or None
DB_USERNAME = os.environ.get('DB_USERNAME') or None
DB_PASSWORD = os.environ.get('DB_PASSWORD') or None
if os.environ.get('SOCIAL_DATABASE_URI'):
   # Explicit override (tests use sqlite:// in memory)
   dbString = None
   dbURI = os.environ['SOCIAL_DATABASE_URI']
elif DB_ENDPOINT and DB_USERNAME and DB_PASSWORD:
   # Production - Use MySQL
   DB_PORT = '3306'
   DB_NAME = dbName
   dbString = f'mysql+pymysql://{DB_USERNAME}:{DB_PASSWORD}@{DB_ENDPOINT}:{DB_PORT}'
   dbURI = dbString + '/' + dbName
else:
   # Development - Use SQLite
   os.makedirs(os.path.join(app.root_path, 'volumes'), exist_ok=True)
   dbString = 'sqlite:///' + os.path.join(app.root_path, 'volumes') + '/'
   dbURI = dbString + dbName + '.db'

# Set database configuration in Flask app
app.config['DB_ENDPOINT'] = DB_ENDPOINT
app.config['DB_USERNAME'] = DB_USERNAME
app.config['DB_PASSWORD'] = DB_PASSWORD
app.config['SQLALCHEMY_DATABASE_NAME'] = dbName
app.config['SQLALCHEMY_DATABASE_STRING'] = dbString
app.config['SQLALCHEMY_DATABASE_URI'] = dbURI
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
db = SQLAlchemy(app)
migrate = Migrate(app, db)

# Social graph and chat settings
app.config['SOCIAL_WRITE_RETRIES'] = int(os.environ.get('SOCIAL_WRITE_RETRIES') or 3)
app.config['MAX_CHAT_PAGE_SIZE'] = int(os.environ.get('MAX_CHAT_PAGE_SIZE') or 60)
app.config['DEFAULT_CHAT_PAGE_SIZE'] = int(os.environ.get('DEFAULT_CHAT_PAGE_SIZE') or 10)
app.config['MESSAGE_MAX_LENGTH'] = int(os.environ.get('MESSAGE_MAX_LENGTH') or 1200)

# Outbound mail (password reset links)
app.config['SMTP_HOST'] = os.environ.get('SMTP_HOST') or None
app.config['SMTP_PORT'] = int(os.environ.get('SMTP_PORT') or 587)
app.config['SMTP_USERNAME'] = os.environ.get('SMTP_USERNAME') or None
app.config['SMTP_PASSWORD'] = os.environ.get('SMTP_PASSWORD') or None
app.config['SMTP_SENDER'] = os.environ.get('SMTP_SENDER') or 'no-reply@ourlinkify.com'
app.config['SMTP_USE_TLS'] = (os.environ.get('SMTP_USE_TLS') or 'true').lower() in ('1', 'true', 'yes')
app.config['PASSWORD_RESET_URL'] = os.environ.get('PASSWORD_RESET_URL') or 'https://ourlinkify.com/reset-password'
app.config['RESET_TOKEN_HOURS'] = int(os.environ.get('RESET_TOKEN_HOURS') or 1)

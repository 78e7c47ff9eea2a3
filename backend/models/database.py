"""
Database instance shared by the app, models and the stats engine.
"""
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

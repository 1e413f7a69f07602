"""Application factory and initialization"""
import logging
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_wtf.csrf import CSRFProtect
from config import config

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
csrf = CSRFProtect()

def create_app(config_name='default'):
    """Create and configure the Flask application"""
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    logging.basicConfig(format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    logging.getLogger('mfi').setLevel(app.config['LOG_LEVEL'])

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    # Configure login manager
    login_manager.login_view = 'auth.login'
    login_manager.login_message = 'Please log in to access this page.'
    login_manager.login_message_category = 'info'

    # Register blueprints
    from mfi.auth import auth_bp
    from mfi.main import main_bp
    from mfi.members import members_bp
    from mfi.loans import loans_bp
    from mfi.partners import partners_bp
    from mfi.settings import settings_bp

    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(main_bp, url_prefix='/')
    app.register_blueprint(members_bp, url_prefix='/members')
    app.register_blueprint(loans_bp, url_prefix='/loans')
    app.register_blueprint(partners_bp, url_prefix='/partners')
    app.register_blueprint(settings_bp, url_prefix='/settings')

    from mfi.utils.helpers import format_money
    app.add_template_filter(format_money, 'money')

    # Context processor for global variables
    @app.context_processor
    def inject_settings():
        from mfi.utils.helpers import get_repository
        from datetime import datetime
        return dict(system_settings=get_repository().get_settings(), now=datetime.now)

    return app

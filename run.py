#!/usr/bin/env python3
"""Application entry point"""
import os
import sys

def init_database():
    """Initialize the database"""
    from mfi import create_app, db
    app = create_app(os.getenv('FLASK_ENV') or 'development')
    with app.app_context():
        db.create_all()
        print("Database initialized!")

def create_admin_user():
    """Create the default admin user and settings row"""
    from mfi import create_app, db
    from mfi.services.registries import UserRegistry
    from mfi.services.repository import SQLAlchemyRepository

    app = create_app(os.getenv('FLASK_ENV') or 'development')

    with app.app_context():
        # Create tables if they don't exist
        db.create_all()

        repo = SQLAlchemyRepository()
        repo.get_settings()
        admin = UserRegistry(repo).ensure_default_admin(
            app.config['DEFAULT_ADMIN_USERNAME'],
            app.config['DEFAULT_ADMIN_PASSWORD'],
        )
        if admin is None:
            print("Users already exist, nothing to do.")
            return

        print("Admin user created successfully!")
        print("Username: {}".format(admin.username))
        print("Please change the password after first login!")

def flag_overdue_loans():
    """Mark active loans past maturity as overdue"""
    from mfi import create_app
    from mfi.services.loans import LoanManager
    from mfi.services.repository import SQLAlchemyRepository

    app = create_app(os.getenv('FLASK_ENV') or 'development')

    with app.app_context():
        flagged = LoanManager(SQLAlchemyRepository()).flag_overdue(
            grace_days=app.config['OVERDUE_GRACE_DAYS']
        )
        print("{} loan(s) flagged overdue".format(len(flagged)))

if __name__ == '__main__':
    # Handle command-line arguments
    if len(sys.argv) > 1:
        command = sys.argv[1]
        if command == 'create-admin':
            create_admin_user()
        elif command == 'init-db':
            init_database()
        elif command == 'flag-overdue':
            flag_overdue_loans()
        else:
            print("Unknown command: {}".format(command))
            print("Available commands: create-admin, init-db, flag-overdue")
            sys.exit(1)
    else:
        # Run the Flask development server
        from mfi import create_app
        app = create_app(os.getenv('FLASK_ENV') or 'development')
        app.run(host='0.0.0.0', port=5000, debug=True)

#!/usr/bin/env python3
"""
Negotiation Tracker Management CLI
Database setup, proposal maintenance and the API server.
"""
import argparse
import logging

from app.config import Settings, configure_logging

logger = logging.getLogger(__name__)


def cmd_init_db(args, settings: Settings):
    """Create the database schema."""
    from db.database import get_db

    db = get_db(args.db or settings.db_path)
    print(f"Initialized database at {db.db_path}")


def cmd_expire(args, settings: Settings):
    """Mark overdue mediator proposals as expired."""
    from db.database import get_db
    from app.services.mediator_proposals import expire_overdue

    db = get_db(args.db or settings.db_path)
    count = expire_overdue(db)
    print(f"Marked {count} proposals as expired")


def cmd_serve(args, settings: Settings):
    """Start the API server."""
    import uvicorn
    uvicorn.run("app.main:app", host=args.host, port=args.port, reload=args.reload)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Negotiation Tracker Management CLI',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python manage.py init-db
  python manage.py expire-proposals --db /tmp/negotiations.db
  python manage.py serve --port 8000
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    init_parser = subparsers.add_parser('init-db', help='Create database tables')
    init_parser.add_argument('--db', help='Database path (defaults to NEGOTIATION_DB_PATH)')
    init_parser.set_defaults(func=cmd_init_db)

    expire_parser = subparsers.add_parser('expire-proposals', help='Expire overdue mediator proposals')
    expire_parser.add_argument('--db', help='Database path (defaults to NEGOTIATION_DB_PATH)')
    expire_parser.set_defaults(func=cmd_expire)

    serve_parser = subparsers.add_parser('serve', help='Start API server')
    serve_parser.add_argument('--host', default='0.0.0.0', help='Host to bind')
    serve_parser.add_argument('--port', type=int, default=8000, help='Port to bind')
    serve_parser.add_argument('--reload', action='store_true', help='Auto-reload on changes')
    serve_parser.set_defaults(func=cmd_serve)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    args.func(args, settings)


if __name__ == "__main__":
    main()

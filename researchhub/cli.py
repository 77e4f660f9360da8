# SPDX-License-Identifier: Apache-2.0
"""Operator CLI: serve the API, create tables, bootstrap roles, mint local tokens."""
import argparse
import sys

from researchhub.config import ROLES


def _serve(args) -> int:
    import uvicorn

    uvicorn.run("researchhub.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _init_db(args) -> int:
    from researchhub.database import create_db_and_tables

    create_db_and_tables()
    print("Tables created.")
    return 0


def _grant_role(args) -> int:
    """Write a profile row directly. The only way to create the first admin."""
    from researchhub.database import create_db_and_tables, session_scope
    from researchhub.models import Profile
    from researchhub.models.base import utcnow

    create_db_and_tables()
    with session_scope() as session:
        profile = session.get(Profile, args.user_id) or Profile(user_id=args.user_id)
        profile.role = args.role
        if args.email:
            profile.email = args.email
        profile.updated_at = utcnow()
        session.add(profile)
    print(f"{args.user_id} is now {args.role}")
    return 0


def _issue_token(args) -> int:
    from researchhub.config import settings
    from researchhub.core.identity import create_access_token

    if settings.production:
        print("Refusing to mint tokens with a production secret; tokens come from the identity service.", file=sys.stderr)
        return 1
    print(create_access_token(args.user_id, email=args.email, role=args.role, expires_minutes=args.minutes))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="researchhub", description="ResearchHub lifecycle service")
    sub = parser.add_subparsers(dest="command", required=True)

    p1 = sub.add_parser("serve", help="Run the API with uvicorn")
    p1.add_argument("--host", default="127.0.0.1")
    p1.add_argument("--port", type=int, default=8000)
    p1.add_argument("--reload", action="store_true")
    p1.set_defaults(func=_serve)

    p2 = sub.add_parser("init-db", help="Create tables and indexes")
    p2.set_defaults(func=_init_db)

    p3 = sub.add_parser("grant-role", help="Set the stored role of a user")
    p3.add_argument("--user-id", required=True)
    p3.add_argument("--role", required=True, choices=ROLES)
    p3.add_argument("--email", default="")
    p3.set_defaults(func=_grant_role)

    p4 = sub.add_parser("issue-token", help="Mint a development bearer token")
    p4.add_argument("--user-id", required=True)
    p4.add_argument("--role", choices=ROLES, default=None)
    p4.add_argument("--email", default="")
    p4.add_argument("--minutes", type=int, default=60)
    p4.set_defaults(func=_issue_token)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

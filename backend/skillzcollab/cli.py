from __future__ import annotations
import argparse
import asyncio
import json
import sys
import uvicorn
from skillzcollab.config import get_server_config, export_as_env_vars
from skillzcollab.db import SessionLocal
from skillzcollab.services.auth import create_super_admin


async def _create_super_admin(username: str, email: str, password: str) -> str:
    async with SessionLocal() as session:
        user = await create_super_admin(session, username=username, email=email, password=password)
        return str(user.id)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="skillzcollab", description="SkillzCollab API tools")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("serve", help="run the API with uvicorn")

    seed = sub.add_parser("create-super-admin", help="create a verified super_admin account")
    seed.add_argument("--username", required=True)
    seed.add_argument("--email", required=True)
    seed.add_argument("--password", required=True)

    sub.add_parser("print-env", help="print the config flattened to environment variable names")

    args = parser.parse_args(argv)
    if args.command == "serve":
        server = get_server_config()
        uvicorn.run("skillzcollab.main:app", host=server.host, port=server.port)
        return 0
    if args.command == "create-super-admin":
        user_id = asyncio.run(_create_super_admin(args.username, args.email, args.password))
        print(f"created super_admin {args.username} ({user_id})")
        return 0
    if args.command == "print-env":
        for key, value in export_as_env_vars().items():
            print(f"{key}={value if isinstance(value, str) else json.dumps(value)}")
        return 0
    return 1


if __name__ == "__main__":
    sys.exit(main())

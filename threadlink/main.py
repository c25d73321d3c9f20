import argparse
import asyncio
import json
import logging
import os
import sys

from threadlink.bootstrap import create_container


async def _parse_once(extractor, url: str) -> dict:
    await extractor.start()
    try:
        post = await extractor.parse(url)
    finally:
        await extractor.close()
    return post.to_dict()


def main(argv=None):
    parser = argparse.ArgumentParser(description="threadlink - Telegram embeds for Threads posts")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    serve_parser = subparsers.add_parser("serve", help="Run the embed server")
    serve_parser.add_argument("--host", help="Bind address (default: $HOST or 0.0.0.0)")
    serve_parser.add_argument("--port", type=int, help="Listening port (default: $PORT or 3000)")

    parse_parser = subparsers.add_parser("parse", help="Extract one post and print it as JSON")
    parse_parser.add_argument("url", help="Post URL")

    args = parser.parse_args(argv)

    # CLI flags win over the environment; BASE_URL then defaults to the new port.
    if getattr(args, "host", None):
        os.environ["HOST"] = args.host
    if getattr(args, "port", None):
        os.environ["PORT"] = str(args.port)

    container = create_container()
    settings = container["settings"]

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    if args.command == "parse":
        result = asyncio.run(_parse_once(container["extractor"], args.url))
        print(json.dumps(result, indent=2, ensure_ascii=False))
        return 0

    if args.command in (None, "serve"):
        try:
            container["server"].run_server()
        except KeyboardInterrupt:
            pass
        return 0

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())

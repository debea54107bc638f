import argparse
import logging
import sys

from .build_static import export_config
from .config import load_config
from .server import serve


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="docshelf", description="Browse a document folder over HTTP.")
    parser.add_argument("--config", help="path to docshelf.config.json")
    parser.add_argument("--root", help="document root to expose")
    sub = parser.add_subparsers(dest="command", required=True)

    serve_p = sub.add_parser("serve", help="run the development server")
    serve_p.add_argument("--host")
    serve_p.add_argument("--port", type=int)

    export_p = sub.add_parser("export", help="write files.json and copy files for static hosting")
    export_p.add_argument("--output-dir")
    export_p.add_argument("--files-dir")
    export_p.add_argument("--clean", action="store_true", help="empty the files directory first")

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    overrides = {"root": args.root}
    if args.command == "serve":
        overrides.update(host=args.host, port=args.port)
    else:
        overrides.update(output_dir=args.output_dir, files_dir=args.files_dir)
    try:
        config = load_config(args.config, **overrides)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.command == "serve":
        serve(config)
    else:
        export_config(config, clean=args.clean)
    return 0


if __name__ == "__main__":
    sys.exit(main())

import argparse
import json
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path

from .config import get_settings
from .editor import EditorSession
from .schema import area_from_feature, area_properties


class _JsonLineFormatter(logging.Formatter):
    def format(self, record):
        return json.dumps(
            {
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
            }
        )


def configure_logging(level=None, log_json=False):
    handler = logging.StreamHandler(sys.stdout if log_json else sys.stderr)
    if log_json:
        handler.setFormatter(_JsonLineFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger("dme")
    root.handlers = [handler]
    root.setLevel((level or "WARNING").upper())
    root.propagate = False


def _build_parser():
    parser = argparse.ArgumentParser(
        description="Dubai map editor: areas and landmarks API and tools",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, etc.)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit one JSON object per log record on stdout",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the areas/landmarks API")
    serve.add_argument("--db", default=None, help="SQLite path for areas and landmarks")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=3000)

    export = sub.add_parser("export", help="Write current areas/landmarks as GeoJSON")
    export.add_argument("--api-url", default=None, help="API base URL")
    export.add_argument("--output", default=None, help="Write to a file instead of stdout")

    imp = sub.add_parser("import", help="Create areas from a GeoJSON file")
    imp.add_argument("--api-url", default=None, help="API base URL")
    imp.add_argument("--input", required=True, help="GeoJSON FeatureCollection path")
    imp.add_argument("--color", default=None, help="Color for imported areas")
    imp.add_argument("--opacity", type=float, default=None, help="Fill opacity for imported areas")
    return parser


def _session(args, client=None):
    settings = get_settings()
    if client is None and args.api_url:
        settings = replace(settings, api_url=args.api_url.rstrip("/"))
    return EditorSession(client=client, settings=settings)


def _serve(args):
    import uvicorn

    if args.db:
        os.environ["DME_DB_PATH"] = args.db
    from .api.app import app

    uvicorn.run(app, host=args.host, port=args.port)
    return 0


def _export(args, client=None):
    with _session(args, client) as session:
        session.load(refresh=True)
        payload = json.dumps(session.feature_collection())
    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        summary = {
            "areas": len(session.areas),
            "landmarks": len(session.landmarks),
            "output": args.output,
        }
        print(json.dumps(summary))
    else:
        print(payload)
    return 0


def _import(args, client=None):
    raw = json.loads(Path(args.input).read_text(encoding="utf-8"))
    features = raw.get("features") if isinstance(raw, dict) else None
    if not isinstance(features, list):
        raise ValueError("input must be a GeoJSON FeatureCollection")
    defaults = {}
    if args.color:
        defaults["color"] = args.color
    if args.opacity is not None:
        defaults["opacity"] = args.opacity
    skipped = 0
    with _session(args, client) as session:
        session.load(refresh=True)
        # Areas are matched by name: a known name updates, a new one creates.
        by_name = {a.name: a.id for a in session.areas}
        for feature in features:
            area = area_from_feature(feature, **defaults)
            if area is None:
                skipped += 1
                continue
            area_id = by_name.get(area.name)
            if area_id is None:
                fields = area.model_dump(exclude={"id", "boundary", "created_at", "updated_at"})
                by_name[area.name] = session.add_area(area.boundary, **fields).id
                continue
            fields = dict(defaults)
            fields.update(area_properties(feature))
            session.update_area(area_id, **fields)
            session.set_area_boundary(area_id, area.boundary)
        result = session.save()
    summary = result.to_dict()
    summary["skipped"] = skipped
    print(json.dumps(summary))
    return 0 if result.ok else 1


def main(argv=None, client=None):
    args = _build_parser().parse_args(argv)
    configure_logging(args.log_level, args.log_json)
    if args.command == "serve":
        return _serve(args)
    if args.command == "export":
        return _export(args, client)
    return _import(args, client)


def _safe_main():
    try:
        code = main()
    except SystemExit:
        raise
    except Exception as exc:
        print(json.dumps({"error": str(exc)}))
        raise SystemExit(1)
    raise SystemExit(code)


if __name__ == "__main__":
    _safe_main()

from __future__ import annotations

import argparse
import json
import os
import sys


def _bootstrap_app():
    from propertyhub import create_app

    app = create_app()
    app.app_context().push()
    return app


def main():
    parser = argparse.ArgumentParser(description="Recompute listing like counters from membership rows and report drift.")
    parser.add_argument("--fix", action="store_true", help="Rewrite drifted counters.")
    args = parser.parse_args()

    _bootstrap_app()
    from propertyhub.services.reconciliation_service import recompute_like_counters

    summary = recompute_like_counters(fix=bool(args.fix))
    print(json.dumps(summary, indent=2))
    return 0 if int(summary.get("drift_count") or 0) == 0 else 2


if __name__ == "__main__":
    os.environ.setdefault("FLASK_APP", "main.py")
    sys.exit(main())

import sys
import json
from django.core.management.base import BaseCommand
from django.db import connections
from django.utils import timezone
from django.conf import settings

from core.health import check_database


class Command(BaseCommand):
    help = "Check database connectivity and print a summary for CI/CD pipelines."

    def add_arguments(self, parser):
        parser.add_argument(
            "--database", default="default", help="Database alias to probe"
        )
        parser.add_argument(
            "--json", action="store_true", help="Output as JSON (default is pretty text)"
        )

    def handle(self, *args, **opts):
        alias = opts["database"]
        db = check_database(alias)
        results = {
            "time": timezone.now().isoformat(),
            "debug": bool(settings.DEBUG),
            "vendor": connections[alias].vendor,
            "ok": db["ok"],
            "checks": {"db": db},
        }

        if opts.get("json"):
            self.stdout.write(json.dumps(results, indent=2))
        else:
            self.stdout.write(f"\n=== CRM Health Check ({results['time']}) ===\n")
            self.stdout.write(f"Database: {alias} ({results['vendor']}) | Debug={results['debug']}\n\n")
            for key, val in results["checks"].items():
                mark = "OK  " if val.get("ok") else "FAIL"
                err = f" ({val.get('error')})" if not val.get("ok") else ""
                self.stdout.write(f" [{mark}] {key.upper()}{err}\n")
            self.stdout.write(f"\nOverall: {'OK' if results['ok'] else 'FAILED'}\n")

        # Exit with code 1 on failure (for CI)
        if not results["ok"]:
            sys.exit(1)

"""Report active invoices that share a number inside one allocation scope.

Exit status 2 signals at least one duplicate group, for use in scheduled checks.
"""

from __future__ import annotations

import argparse
import logging
import sys

from invoicing.core.logging_config import configure_logging
from invoicing.database.db import get_db_session
from invoicing.services.integrity_service import IntegrityService

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--scope", default=None, help="Limit the check to one scope key, e.g. company:7")
    args = parser.parse_args(argv)

    configure_logging()
    with get_db_session() as session:
        groups = IntegrityService(db=session).find_duplicate_numbers(scope_key=args.scope)

    for group in groups:
        logger.error(
            "invoice.integrity.duplicate_number",
            extra={
                "event": "invoice.integrity.duplicate_number",
                "scope_key": group.scope_key,
                "invoice_number": group.invoice_number,
            },
        )
        print(f"DUPLICATE {group.scope_key} {group.invoice_number} ids={','.join(map(str, group.invoice_ids))}")

    if groups:
        print(f"ALERT: duplicate_groups={len(groups)}")
        return 2
    print("OK: duplicate_groups=0")
    return 0


if __name__ == "__main__":
    sys.exit(main())

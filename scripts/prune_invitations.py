"""
Maintenance script that deletes pending group invitations past their expiry.

Expired invitations are already ignored at read time; this only reclaims the
documents. Run it by hand or from a scheduler, nothing runs it automatically.
"""

from __future__ import annotations

import sys

from tradehub import create_app


def main() -> None:
    """Main entry point for the prune script."""
    app = create_app()
    service = app.extensions["tradehub"]["groups"]
    if service is None:
        print("Error: no data store configured.")
        sys.exit(1)

    result = service.prune_expired_invitations()
    if not result["success"]:
        print(f"\nAn error occurred while pruning: {result['error']}")
        sys.exit(1)
    print(f"Deleted {result['deletedCount']} expired invitations.")


if __name__ == "__main__":
    main()

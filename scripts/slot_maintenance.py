"""
Operator entry point for the horizon maintainer.

    python scripts/slot_maintenance.py                 # one full cycle
    python scripts/slot_maintenance.py generate 42     # regenerate business 42
"""

import logging
import sys
import pathlib

from dotenv import load_dotenv

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
load_dotenv()

from slot_engine.database import SessionLocal
from slot_engine.redis_client import redis_client
from slot_engine.services.slots import SlotMaintenance, generate_slots_for_business


def main(argv: list[str]) -> int:
    logging.basicConfig(level=logging.INFO)

    if argv[:1] == ["generate"]:
        if len(argv) != 2:
            print("usage: slot_maintenance.py generate <business_id>")
            return 2
        db = SessionLocal()
        try:
            created = generate_slots_for_business(db, int(argv[1]), redis=redis_client)
        finally:
            db.close()
        print(f"Slots created: {created}")
        return 0

    maintenance = SlotMaintenance(SessionLocal, redis=redis_client, business_delay_seconds=0)
    maintenance.run_manual_maintenance()
    print(maintenance.get_status())
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))

#!/usr/bin/env python3
"""Provision the rooms document with a set of available rooms."""
import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from common.config import get_settings  # noqa: E402
from common.models import Room  # noqa: E402
from common.store import RoomStore  # noqa: E402


def seed_rooms(path: Path, count: int, force: bool = False) -> bool:
    if path.exists() and not force:
        print(f"{path} already exists, use --force to overwrite it.")
        return False
    rooms = [Room(id=room_id, name=f"Room {room_id}") for room_id in range(1, count + 1)]
    RoomStore(path).provision(rooms)
    print(f"Provisioned {count} rooms in {path}.")
    return True


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--count", type=int, default=10, help="number of rooms to create")
    parser.add_argument("--path", default=get_settings().rooms_file, help="rooms document to write")
    parser.add_argument("--force", action="store_true", help="overwrite an existing document")
    args = parser.parse_args()
    seed_rooms(Path(args.path), args.count, args.force)


if __name__ == "__main__":
    main()

# store/record_store.py

import sqlite3
from pathlib import Path
from typing import List

from udprecord.core.errors import RecordError
from udprecord.core.record import Record


class RecordStoreError(RecordError):
    pass


def load_records(path) -> List[Record]:
    """
    Read every row of the `records (id, data)` table.

    Raises RecordStoreError when the file, table or columns are missing,
    or when a row doesn't make a valid Record.
    """
    db_path = Path(path)
    if not db_path.is_file():
        raise RecordStoreError(f"No such file: {db_path}")

    # mode=ro: never create an empty database by accident
    try:
        conn = sqlite3.connect(f"{db_path.resolve().as_uri()}?mode=ro", uri=True)
    except sqlite3.Error as e:
        raise RecordStoreError(f"Couldn't open file: {e}") from e

    try:
        rows = conn.execute("SELECT id, data FROM records").fetchall()
    except sqlite3.Error as e:
        raise RecordStoreError(f"Couldn't load records from DB: {e}") from e
    finally:
        conn.close()

    records = []
    for row_id, data in rows:
        try:
            records.append(Record(id=row_id, text=data))
        except ValueError as e:
            raise RecordStoreError(f"Bad row {row_id!r}: {e}") from e
    return records

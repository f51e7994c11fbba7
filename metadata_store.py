# Module for the persisted record of the last successful capture of each artifact

import os
import json
import logging
import tempfile

import file_handler
from models import CaptureRecord


class MetadataPersistenceError(Exception):
    """Raised when the metadata file cannot be written."""


class MetadataStore:
    """
    Ordered mapping of artifact identity -> CaptureRecord.

    Iteration follows insertion order, so reports list artifacts in the order they
    were first archived. Only the orchestrator calls put(); everything else reads.
    Entries the loader cannot use are kept verbatim and written back on save, so
    they are only ever replaced by a successful capture.
    """

    def __init__(self, path, archive_dir, records=None):
        self.path = path
        self.archive_dir = archive_dir
        self._records = dict(records or {})
        self._unreadable = {} # identity -> raw JSON entry

    # --- Loading ---
    @classmethod
    def load(cls, path, archive_dir):
        """Loads the store from disk. A missing or unreadable file yields an empty store."""
        store = cls(path, archive_dir)
        if not os.path.exists(path):
            logging.info(f"No metadata file at {path}. Starting with an empty archive record.")
            return store
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError:
            logging.warning(f"Could not decode JSON from metadata file {path}. Starting fresh.")
            return store
        except (OSError, UnicodeDecodeError) as e:
            logging.warning(f"Error reading metadata file {path}: {e}. Starting fresh.")
            return store

        if not isinstance(data, dict):
            logging.warning(f"Metadata file {path} does not contain a JSON object. Starting fresh.")
            return store

        for identity, entry in data.items():
            try:
                record = CaptureRecord.from_dict(entry)
            except (KeyError, TypeError, ValueError) as e:
                logging.warning(f"Ignoring malformed metadata entry for {identity}: {e}. It is kept unchanged in the file.")
                store._unreadable[identity] = entry
                continue
            normalized = file_handler.normalize_stored_path(record.local_path, archive_dir)
            if normalized is None:
                logging.warning(f"Ignoring metadata entry for {identity}: path {record.local_path} is outside the archive. It is kept unchanged in the file.")
                store._unreadable[identity] = entry
                continue
            if normalized != record.local_path:
                logging.warning(f"Normalized archived path for {identity}: {record.local_path} -> {normalized}")
                record = CaptureRecord(record.last_captured_at, normalized, record.description)
            store._records[identity] = record

        logging.info(f"Loaded {len(store)} archive records from metadata file: {path}")
        return store

    # --- Access ---
    def get(self, identity):
        return self._records.get(identity)

    def __contains__(self, identity):
        return identity in self._records

    def __len__(self):
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    def items(self):
        return list(self._records.items())

    def put(self, identity, record):
        """Replaces the record for an identity. The record's path must be store-relative."""
        if not file_handler.is_store_relative(record.local_path, self.archive_dir):
            raise ValueError(f"Archived path {record.local_path} for {identity} is not under {self.archive_dir}")
        self._records[identity] = record
        self._unreadable.pop(identity, None)

    def to_dict(self):
        data = {identity: record.to_dict() for identity, record in self._records.items()}
        for identity, entry in self._unreadable.items():
            data.setdefault(identity, entry)
        return data

    # --- Saving ---
    def save(self):
        """Writes the store atomically (temp file in the same directory, then os.replace)."""
        directory = os.path.dirname(self.path) or '.'
        temp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(prefix='.metadata-', suffix='.tmp', dir=directory)
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
                f.write('\n')
            os.replace(temp_path, self.path)
            temp_path = None
            logging.info(f"Saved {len(self)} archive records to {self.path}")
        except OSError as e:
            raise MetadataPersistenceError(f"Error saving metadata file {self.path}: {e}") from e
        finally:
            if temp_path and os.path.exists(temp_path):
                os.remove(temp_path)

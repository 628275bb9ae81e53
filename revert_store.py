# revert_store.py
import json
import os
import tempfile


class RevertStoreError(Exception):
    """Raised when the revert mappings could not be written to disk."""


class RevertStore:
    """
    Mapping of renamed path -> original path, persisted as a flat JSON object.

    The store is loaded once, mutated in memory while a batch runs and written
    back in full by save().
    """

    def __init__(self, path, mappings=None):
        self.path = path
        self.mappings = dict(mappings or {})

    @classmethod
    def load(cls, path):
        """Reads the store from path. A missing or malformed file gives an empty store."""
        if not os.path.exists(path):
            return cls(path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            print(f"Could not read revert mappings from {path}: {e}. Starting with an empty mapping.")
            return cls(path)
        if not isinstance(data, dict):
            print(f"Revert mappings in {path} are not a JSON object. Starting with an empty mapping.")
            return cls(path)
        mappings = {k: v for k, v in data.items() if isinstance(k, str) and isinstance(v, str)}
        return cls(path, mappings)

    def save(self):
        """Atomically rewrites the store file with the current mappings."""
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(prefix=".revert-", suffix=".json", dir=directory)
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(self.mappings, f, indent=2, sort_keys=True, ensure_ascii=False)
                f.write("\n")
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            raise RevertStoreError(f"Failed to write revert mappings to {self.path}: {e}") from e
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)

    def insert(self, new_path, original_path):
        self.mappings[str(new_path)] = str(original_path)

    def remove(self, new_path):
        self.mappings.pop(str(new_path), None)

    def lookup(self, new_path):
        return self.mappings.get(str(new_path))

    def keys(self):
        return sorted(self.mappings)

    def find_key(self, path):
        """Returns the stored key matching path as given or by absolute path, else None."""
        path = str(path)
        if path in self.mappings:
            return path
        wanted = os.path.abspath(path)
        for key in self.keys():
            if os.path.abspath(key) == wanted:
                return key
        return None

    def __len__(self):
        return len(self.mappings)

    def __contains__(self, new_path):
        return str(new_path) in self.mappings

"""Tiered data store with freshness-aware caching.

Manages read/write of pipeline files organized into tiers by lifetime:
  - raw/: Upstream inputs, read-only (cube, protected areas, checklist)
  - reference/: Looked-up metadata, 90-day TTL (GBIF taxonomy)
  - interim/: Preprocessed inputs, recomputed per run (aggregated time series)
  - output/: Indicator tables, always recomputed (status, appearing taxa)

JSON payloads are wrapped in a metadata envelope with ``valid_until`` so the
flows can skip lookups that are still fresh.

Tables are tab-separated files written with pandas.  The data file stays
plain TSV and its metadata lives in a sidecar ``.meta.json``.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path  # noqa: TC003 (used at runtime)
from typing import Any

import pandas as pd


class DataStore:
    """Manages read/write of pipeline files with TTL metadata."""

    def __init__(self, base_dir: Path) -> None:
        self.base = base_dir
        self.raw = base_dir / "raw"
        self.reference = base_dir / "reference"
        self.interim = base_dir / "interim"
        self.output = base_dir / "output"

    def read(self, path: Path) -> Any | None:
        """Read data payload from a metadata-enveloped JSON file.

        Returns the ``data`` field, or None if the file doesn't exist.
        """
        envelope = self.read_raw(path)
        if envelope is None:
            return None
        return envelope.get("data", envelope)

    def read_raw(self, path: Path) -> dict[str, Any] | None:
        """Read the full envelope (meta + data) from a JSON file."""
        full = self._resolve(path)
        if not full.exists():
            return None
        with full.open() as f:
            result: dict[str, Any] = json.load(f)
        return result

    def write(
        self,
        path: Path,
        data: Any,
        source: str,
        valid_until: datetime | None = None,
        **params: Any,
    ) -> Path:
        """Write data wrapped in a metadata envelope.

        Args:
            path: Relative path under base_dir (e.g. ``reference/taxonomy.json``).
            data: Payload to store under the ``data`` key.
            source: Data source identifier (e.g. ``"api.gbif.org"``).
            valid_until: Expiry timestamp. None means no caching.
            **params: Extra metadata fields (as-of year, query params, etc.).

        Returns:
            Absolute path of the written file.
        """
        full = self._resolve(path)
        full.parent.mkdir(parents=True, exist_ok=True)

        envelope = {"meta": self._meta(source, valid_until, params), "data": data}
        with full.open("w") as f:
            json.dump(envelope, f, indent=2)

        return full

    def write_table(
        self,
        path: Path,
        df: pd.DataFrame,
        source: str,
        valid_until: datetime | None = None,
        **params: Any,
    ) -> Path:
        """Write a DataFrame as TSV with sidecar metadata.

        Args:
            path: Relative destination (e.g. ``output/emerging_status.tsv``).
            df: Table to write; the index is not written.
            source: Producer identifier (flow or input name).
            valid_until: Expiry timestamp.
            **params: Extra metadata fields.

        Returns:
            Absolute path of the stored table.
        """
        full = self._resolve(path)
        full.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(full, sep="\t", index=False)

        meta = self._meta(source, valid_until, params)
        meta["rows"] = len(df)
        meta_path = full.with_suffix(full.suffix + ".meta.json")
        with meta_path.open("w") as f:
            json.dump({"meta": meta}, f, indent=2)

        return full

    def read_table(self, path: Path, **read_kwargs: Any) -> pd.DataFrame | None:
        """Read a TSV table, or None if it doesn't exist."""
        full = self._resolve(path)
        if not full.exists():
            return None
        return pd.read_csv(full, sep="\t", **read_kwargs)

    def _meta(
        self, source: str, valid_until: datetime | None, params: dict[str, Any]
    ) -> dict[str, Any]:
        meta: dict[str, Any] = {
            "source": source,
            "fetched_at": datetime.now(UTC).isoformat(),
        }
        if valid_until is not None:
            meta["valid_until"] = valid_until.isoformat()
        if params:
            meta.update(params)
        return meta

    def _resolve(self, path: Path) -> Path:
        full = self.base / path if not path.is_absolute() else path
        try:
            full.resolve().relative_to(self.base.resolve())
        except ValueError:
            msg = f"Path escapes store base directory: {path}"
            raise ValueError(msg) from None
        return full

    def _read_meta(self, full: Path) -> dict[str, Any]:
        """Read metadata from either a JSON envelope or a sidecar .meta.json."""
        sidecar = full.with_suffix(full.suffix + ".meta.json")
        if sidecar.exists():
            with sidecar.open() as f:
                result: dict[str, Any] = json.load(f)
            return result.get("meta", {})

        if full.suffix == ".json" and full.exists():
            with full.open() as f:
                envelope: dict[str, Any] = json.load(f)
            return envelope.get("meta", {})

        return {}

    def is_fresh(self, path: Path) -> bool:
        """Check if a file exists and hasn't expired.

        Works with both JSON envelopes and sidecar .meta.json files.
        Returns False if the file is missing, has no ``valid_until``, or
        the expiry time has passed.
        """
        full = self._resolve(path)
        if not full.exists():
            return False

        meta = self._read_meta(full)
        valid_until = meta.get("valid_until")
        if valid_until is None:
            return False

        expiry = datetime.fromisoformat(valid_until)
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=UTC)
        return datetime.now(UTC) < expiry

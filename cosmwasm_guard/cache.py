"""
Incremental Cache

Content-hash keyed store of per-file analysis artifacts (declarations minus
bodies, plus the file's IR), so unchanged files skip the IR builder.

Layout:
    <cache_dir>/manifest.json          schema-versioned path -> {content_hash, artifact_id}
    <cache_dir>/artifacts/<id>.bin     msgpack-encoded CachedFileArtifact

Every failure degrades to "not cached": lookups miss, writes are logged and
skipped, and a schema mismatch discards the whole manifest.
"""

import hashlib
import json
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import msgpack

from cosmwasm_guard.contract.models import ContractInfo, EntryPoint, FunctionInfo, MessageEnum, StateItem
from cosmwasm_guard.ir.codec import decode_function, encode_function
from cosmwasm_guard.ir.types import ContractIr, FunctionIr
from cosmwasm_guard.observability import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION = 1

MANIFEST_FILE = "manifest.json"
ARTIFACTS_DIR = "artifacts"


@dataclass
class CachedFileArtifact:
    """Everything one file contributes to a crate, minus executable bodies"""

    file: str
    entry_points: list[EntryPoint] = field(default_factory=list)
    message_enums: list[MessageEnum] = field(default_factory=list)
    state_items: list[StateItem] = field(default_factory=list)
    functions: list[FunctionInfo] = field(default_factory=list)
    ir_functions: list[FunctionIr] = field(default_factory=list)
    ir_entry_point_names: list[str] = field(default_factory=list)

    @classmethod
    def from_analysis(cls, file: str, contract: ContractInfo, ir: ContractIr) -> "CachedFileArtifact":
        return cls(
            file=file,
            entry_points=list(contract.entry_points),
            message_enums=list(contract.message_enums),
            state_items=list(contract.state_items),
            functions=list(contract.functions),
            ir_functions=list(ir.functions),
            ir_entry_point_names=list(ir.entry_points),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize (msgpack-ready)"""
        return {
            "file": self.file,
            "entry_points": [ep.to_dict() for ep in self.entry_points],
            "message_enums": [m.to_dict() for m in self.message_enums],
            "state_items": [s.to_dict() for s in self.state_items],
            "functions": [f.to_dict() for f in self.functions],
            "ir_functions": [encode_function(f) for f in self.ir_functions],
            "ir_entry_point_names": list(self.ir_entry_point_names),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CachedFileArtifact":
        """Deserialize"""
        return cls(
            file=data["file"],
            entry_points=[EntryPoint.from_dict(ep) for ep in data["entry_points"]],
            message_enums=[MessageEnum.from_dict(m) for m in data["message_enums"]],
            state_items=[StateItem.from_dict(s) for s in data["state_items"]],
            functions=[FunctionInfo.from_dict(f) for f in data["functions"]],
            ir_functions=[decode_function(f) for f in data["ir_functions"]],
            ir_entry_point_names=list(data["ir_entry_point_names"]),
        )


@dataclass
class ManifestEntry:
    content_hash: str
    artifact_id: str

    def to_dict(self) -> dict[str, Any]:
        return {"content_hash": self.content_hash, "artifact_id": self.artifact_id}


@dataclass
class Manifest:
    schema_version: int = SCHEMA_VERSION
    files: dict[str, ManifestEntry] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "files": {path: entry.to_dict() for path, entry in sorted(self.files.items())},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Manifest":
        return cls(
            schema_version=data["schema_version"],
            files={
                path: ManifestEntry(content_hash=entry["content_hash"], artifact_id=entry["artifact_id"])
                for path, entry in data["files"].items()
            },
        )


class CacheManager:
    """
    On-disk artifact cache.

    The manifest is read once in `open` and written once per crate run by
    `flush`. Concurrent processes sharing one cache directory are unsupported.

    Usage:
        >>> cache = CacheManager.open(Path(".cosmwasm-guard-cache"))
        >>> digest = CacheManager.hash_contents(source)
        >>> cache.lookup("src/contract.rs", digest)
        None  # Cache miss
        >>> cache.store("src/contract.rs", digest, artifact)
        >>> cache.flush()
    """

    def __init__(self, cache_dir: Path, manifest: Manifest, enabled: bool = True) -> None:
        self.cache_dir = cache_dir
        self.manifest = manifest
        self.enabled = enabled
        self._stats = {"hits": 0, "misses": 0, "stores": 0, "errors": 0}

    @property
    def artifacts_dir(self) -> Path:
        return self.cache_dir / ARTIFACTS_DIR

    @property
    def manifest_path(self) -> Path:
        return self.cache_dir / MANIFEST_FILE

    @classmethod
    def open(cls, cache_dir: str | Path) -> "CacheManager":
        """
        Open (creating if needed) a cache directory.

        An unusable directory yields a disabled cache rather than an error.
        """
        cache_dir = Path(cache_dir)
        try:
            (cache_dir / ARTIFACTS_DIR).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("cache_dir_unavailable", cache_dir=str(cache_dir), error=str(e))
            return cls(cache_dir, Manifest(), enabled=False)

        return cls(cache_dir, cls._load_manifest(cache_dir / MANIFEST_FILE))

    @staticmethod
    def _load_manifest(path: Path) -> Manifest:
        if not path.exists():
            return Manifest()
        try:
            manifest = Manifest.from_dict(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("cache_manifest_unreadable", path=str(path), error=str(e))
            return Manifest()

        if manifest.schema_version != SCHEMA_VERSION:
            logger.info(
                "cache_schema_mismatch",
                found=manifest.schema_version,
                expected=SCHEMA_VERSION,
            )
            return Manifest()
        return manifest

    @staticmethod
    def hash_contents(contents: str) -> str:
        """SHA-256 hex digest of file contents"""
        return hashlib.sha256(contents.encode("utf-8")).hexdigest()

    @staticmethod
    def artifact_id_for(content_hash: str, file_path: str) -> str:
        """Per-path artifact name; identical contents under two paths get two artifacts"""
        path_hash = hashlib.sha256(file_path.encode("utf-8")).hexdigest()[:8]
        return f"{content_hash[:16]}-{path_hash}.bin"

    # ============================================================
    # Lookup / store
    # ============================================================

    def lookup(self, file_path: str, current_hash: str) -> CachedFileArtifact | None:
        """
        Return the cached artifact for `file_path` if its content hash matches.

        A missing entry, a hash mismatch or an unreadable artifact is a miss.
        """
        if not self.enabled:
            return None

        entry = self.manifest.files.get(file_path)
        if entry is None or entry.content_hash != current_hash:
            self._stats["misses"] += 1
            return None

        try:
            raw = (self.artifacts_dir / entry.artifact_id).read_bytes()
            artifact = CachedFileArtifact.from_dict(msgpack.unpackb(raw, raw=False, strict_map_key=False))
        except Exception as e:
            # Corrupt or stale artifacts of any shape mean "rebuild this file"
            logger.debug("cache_artifact_unreadable", file=file_path, artifact=entry.artifact_id, error=str(e))
            self._stats["misses"] += 1
            return None

        # Ids are per path; a foreign artifact here means a hash collision or a hand-edited manifest
        if artifact.file != file_path:
            self._stats["misses"] += 1
            return None

        self._stats["hits"] += 1
        logger.debug("cache_hit", file=file_path, hash=current_hash[:16])
        return artifact

    def store(self, file_path: str, content_hash: str, artifact: CachedFileArtifact) -> bool:
        """Write an artifact and upsert the manifest entry. Returns False if not cached."""
        if not self.enabled:
            return False

        artifact_id = self.artifact_id_for(content_hash, file_path)
        try:
            data = msgpack.packb(artifact.to_dict(), use_bin_type=True)
            (self.artifacts_dir / artifact_id).write_bytes(data)
        except (OSError, TypeError, ValueError) as e:
            self._stats["errors"] += 1
            logger.warning("cache_store_failed", file=file_path, error=str(e))
            return False

        self.manifest.files[file_path] = ManifestEntry(content_hash=content_hash, artifact_id=artifact_id)
        self._stats["stores"] += 1
        return True

    def prune(self, seen: set[str]) -> int:
        """
        Drop manifest entries for files that were not seen this run and no
        longer exist, then delete artifacts no entry references.

        Entries for existing files outside this run are kept, so analyzing a
        sub-path does not evict the rest of the crate. Returns the number of
        entries dropped.
        """
        if not self.enabled:
            return 0

        stale = [path for path in self.manifest.files if path not in seen and not Path(path).is_file()]
        for path in stale:
            del self.manifest.files[path]

        referenced = {entry.artifact_id for entry in self.manifest.files.values()}
        try:
            for artifact_path in self.artifacts_dir.iterdir():
                if artifact_path.name not in referenced:
                    artifact_path.unlink()
        except OSError as e:
            self._stats["errors"] += 1
            logger.warning("cache_prune_failed", cache_dir=str(self.cache_dir), error=str(e))

        if stale:
            logger.debug("cache_pruned", entries=len(stale))
        return len(stale)

    def flush(self) -> bool:
        """Persist the manifest"""
        if not self.enabled:
            return False
        try:
            self.manifest_path.write_text(json.dumps(self.manifest.to_dict(), indent=2), encoding="utf-8")
        except OSError as e:
            self._stats["errors"] += 1
            logger.warning("cache_flush_failed", path=str(self.manifest_path), error=str(e))
            return False
        return True

    def clear(self) -> bool:
        """Delete every artifact and empty the manifest"""
        self.manifest.files.clear()
        if not self.enabled:
            return False
        try:
            if self.artifacts_dir.exists():
                shutil.rmtree(self.artifacts_dir)
            self.artifacts_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self._stats["errors"] += 1
            logger.warning("cache_clear_failed", cache_dir=str(self.cache_dir), error=str(e))
            return False
        return self.flush()

    # ============================================================
    # Merge
    # ============================================================

    @staticmethod
    def merge_cached_into(
        artifact: CachedFileArtifact,
        contract: ContractInfo,
        ir: ContractIr,
        file_path: str,
    ) -> None:
        """Append a cached file's declarations and IR to the crate model"""
        contract.source_files.append(file_path)
        contract.entry_points.extend(artifact.entry_points)
        contract.message_enums.extend(artifact.message_enums)
        contract.state_items.extend(artifact.state_items)
        contract.functions.extend(artifact.functions)

        ir.functions.extend(artifact.ir_functions)
        for name in artifact.ir_entry_point_names:
            if name not in ir.entry_points:
                ir.entry_points.append(name)

    def get_stats(self) -> dict[str, Any]:
        """Cache statistics"""
        total = self._stats["hits"] + self._stats["misses"]
        return {
            **self._stats,
            "entries": len(self.manifest.files),
            "hit_rate": self._stats["hits"] / total if total else 0.0,
        }

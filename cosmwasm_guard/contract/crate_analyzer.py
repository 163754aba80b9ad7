"""
Crate Analyzer

Walks a crate's Rust files and merges per-file declarations and IR into
whole-crate structures, going through the incremental cache when one is given.
"""

from dataclasses import dataclass, field
from pathlib import Path

from cosmwasm_guard.cache import CachedFileArtifact, CacheManager
from cosmwasm_guard.errors import DiscoveryError
from cosmwasm_guard.ir.builder import IrBuilder
from cosmwasm_guard.ir.types import ContractIr
from cosmwasm_guard.observability import get_logger
from cosmwasm_guard.parsing import SourceFile, parse_source

from .models import ContractInfo, FunctionInfo
from .visitor import ContractVisitor

logger = get_logger(__name__)


@dataclass
class CrateAnalysis:
    """Merged declarations, IR and file sources for one crate"""

    contract: ContractInfo
    ir: ContractIr
    source_map: dict[str, str] = field(default_factory=dict)

    @property
    def files(self) -> list[str]:
        return list(self.source_map)


def discover_rs_files(path: str | Path) -> list[Path]:
    """
    Find the `.rs` files to analyze.

    A file path is analyzed alone. For a directory, `src/` is preferred when it
    exists, and anything under a `target/` directory is skipped.

    Raises:
        DiscoveryError: If no Rust files are found
    """
    path = Path(path)
    if path.is_file():
        return [path]

    src_dir = path / "src"
    search_dir = src_dir if src_dir.is_dir() else path

    files = sorted(
        p for p in search_dir.rglob("*.rs") if p.is_file() and "target" not in p.relative_to(search_dir).parts
    )
    if not files:
        raise DiscoveryError(f"No .rs files found in: {path}", str(path))
    return files


def attach_bodies(cached: list[FunctionInfo], fresh: list[FunctionInfo]) -> int:
    """
    Graft bodies from a fresh parse onto cache-restored declarations.

    Matching is by ordinal, confirmed by name; on disagreement the first unused
    fresh function with the same name is taken. Returns the number attached.
    """
    by_ordinal = {func.ordinal: func for func in fresh}
    used: set[int] = set()
    attached = 0

    for func in cached:
        candidate = by_ordinal.get(func.ordinal)
        if candidate is None or candidate.name != func.name or candidate.ordinal in used:
            candidate = next((f for f in fresh if f.name == func.name and f.ordinal not in used), None)
        if candidate is None:
            continue
        func.body = candidate.body
        used.add(candidate.ordinal)
        attached += 1

    return attached


def analyze_crate(path: str | Path, cache: CacheManager | None = None) -> CrateAnalysis:
    """
    Analyze every Rust file of a crate.

    Each file is always parsed, since detectors need the syntax trees. On a
    cache hit its declarations and IR come from the cache; on a miss the IR is
    built and stored. Entry-point flags are reconciled once all files merge.

    Raises:
        DiscoveryError: No Rust files under `path`
        SourceFileError: A file could not be read
        ParsingError: A file could not be parsed
    """
    files = discover_rs_files(path)
    contract = ContractInfo(crate_path=str(path))
    ir = ContractIr()
    source_map: dict[str, str] = {}
    hits = 0

    for file_path in files:
        key = str(file_path)
        source = SourceFile.from_file(file_path).content
        tree = parse_source(source, key)
        file_info = ContractVisitor.extract(tree)
        source_map[key] = source

        content_hash = CacheManager.hash_contents(source)
        artifact = cache.lookup(key, content_hash) if cache is not None else None

        if artifact is not None:
            hits += 1
            attach_bodies(artifact.functions, file_info.functions)
            CacheManager.merge_cached_into(artifact, contract, ir, key)
            contract.raw_syntax_trees.append((key, tree))
            continue

        file_ir = IrBuilder.build_contract(file_info)
        if cache is not None:
            cache.store(key, content_hash, CachedFileArtifact.from_analysis(key, file_info, file_ir))

        contract.merge(file_info)
        ir.functions.extend(file_ir.functions)

    ir.reconcile_entry_points(contract.entry_point_names)

    if cache is not None:
        cache.prune(set(source_map))
        cache.flush()

    logger.info(
        "crate_analyzed",
        path=str(path),
        files=len(files),
        cache_hits=hits,
        functions=len(ir.functions),
        entry_points=len(ir.entry_points),
    )
    return CrateAnalysis(contract=contract, ir=ir, source_map=source_map)


def analyze_source(source: str, file: str = "contract.rs") -> CrateAnalysis:
    """Analyze a single in-memory source text (no cache)"""
    tree = parse_source(source, file)
    contract = ContractVisitor.extract(tree)
    ir = IrBuilder.build_contract(contract)
    ir.reconcile_entry_points(contract.entry_point_names)
    return CrateAnalysis(contract=contract, ir=ir, source_map={file: source})

"""
Incremental cache tests: idempotence, invalidation and degraded modes
"""

import json
from unittest.mock import patch

import pytest

from cosmwasm_guard.cache import SCHEMA_VERSION, CacheManager
from cosmwasm_guard.contract.crate_analyzer import analyze_crate, attach_bodies, discover_rs_files
from cosmwasm_guard.contract.models import FunctionInfo
from cosmwasm_guard.detectors import all_detectors
from cosmwasm_guard.errors import DiscoveryError
from cosmwasm_guard.ir import IrBuilder
from cosmwasm_guard.pipeline import run_detectors
from cosmwasm_guard.span import SourceSpan

STATE_RS = """\
use cw_storage_plus::Item;

const OWNER: Item<String> = Item::new("owner");

pub fn load_owner(deps: Deps) -> String {
    OWNER.load(deps.storage).unwrap()
}
"""

SHARED_RS = """\
pub fn shared_helper(value: u64) -> u64 {
    value + 1
}
"""

DUPLICATE_HELPERS_RS = """\
pub struct Alpha;
pub struct Beta;

impl Alpha {
    fn helper(&self) -> u64 {
        1
    }
}

impl Beta {
    fn helper(&self) -> u64 {
        let base = 2;
        base + 1
    }
}
"""


@pytest.fixture
def crate(write_crate, vulnerable_source):
    return write_crate({"src/contract.rs": vulnerable_source, "src/state.rs": STATE_RS})


def findings_of(analysis) -> list[dict]:
    return [f.to_dict() for f in run_detectors(analysis, all_detectors(), parallel_threshold=0)]


class TestIdempotence:
    """An unchanged crate is served entirely from the cache"""

    def test_second_run_skips_builder(self, crate, tmp_path):
        cache_dir = tmp_path / "cache"

        first = analyze_crate(crate, cache=CacheManager.open(cache_dir))

        with patch.object(IrBuilder, "build_function", wraps=IrBuilder.build_function) as build:
            second_cache = CacheManager.open(cache_dir)
            second = analyze_crate(crate, cache=second_cache)

        assert build.call_count == 0
        assert second_cache.get_stats()["hits"] == 2
        assert findings_of(second) == findings_of(first)
        assert findings_of(first)

    def test_restored_model_matches_fresh(self, crate, tmp_path):
        cache_dir = tmp_path / "cache"
        fresh = analyze_crate(crate, cache=CacheManager.open(cache_dir))
        cached = analyze_crate(crate, cache=CacheManager.open(cache_dir))

        assert cached.ir.functions == fresh.ir.functions
        assert cached.ir.entry_points == fresh.ir.entry_points
        assert cached.contract.entry_points == fresh.contract.entry_points
        assert cached.contract.state_items == fresh.contract.state_items
        assert [f.body is not None for f in cached.contract.functions] == [True] * len(fresh.contract.functions)
        assert [name for name, _ in cached.contract.raw_syntax_trees] == cached.files

    def test_identical_files_keep_separate_artifacts(self, write_crate, tmp_path):
        crate = write_crate({"src/a/util.rs": SHARED_RS, "src/b/util.rs": SHARED_RS})
        cache_dir = tmp_path / "cache"
        analyze_crate(crate, cache=CacheManager.open(cache_dir))

        with patch.object(IrBuilder, "build_function", wraps=IrBuilder.build_function) as build:
            cache = CacheManager.open(cache_dir)
            analyze_crate(crate, cache=cache)

        assert build.call_count == 0
        assert cache.get_stats()["hits"] == 2
        assert len(list((cache_dir / "artifacts").iterdir())) == 2

    def test_duplicate_names_get_their_own_bodies(self, write_crate, tmp_path):
        crate = write_crate({"src/lib.rs": DUPLICATE_HELPERS_RS})
        cache_dir = tmp_path / "cache"
        fresh = analyze_crate(crate, cache=CacheManager.open(cache_dir))
        cached = analyze_crate(crate, cache=CacheManager.open(cache_dir))

        fresh_spans = [f.body.span for f in fresh.contract.functions]
        assert [f.name for f in cached.contract.functions] == ["helper", "helper"]
        assert [f.body.span for f in cached.contract.functions] == fresh_spans
        assert fresh_spans[0] != fresh_spans[1]

    def test_manifest_written_once(self, crate, tmp_path):
        cache_dir = tmp_path / "cache"
        analyze_crate(crate, cache=CacheManager.open(cache_dir))

        manifest = json.loads((cache_dir / "manifest.json").read_text(encoding="utf-8"))

        assert manifest["schema_version"] == SCHEMA_VERSION
        assert sorted(manifest["files"]) == sorted(str(p) for p in discover_rs_files(crate))
        for entry in manifest["files"].values():
            assert (cache_dir / "artifacts" / entry["artifact_id"]).is_file()
            assert entry["artifact_id"].startswith(entry["content_hash"][:16])


class TestInvalidation:
    """A content change rebuilds only the changed file"""

    def test_one_byte_change(self, crate, tmp_path):
        cache_dir = tmp_path / "cache"
        analyze_crate(crate, cache=CacheManager.open(cache_dir))
        before = json.loads((cache_dir / "manifest.json").read_text(encoding="utf-8"))["files"]

        state = crate / "src" / "state.rs"
        state.write_text(STATE_RS.replace('"owner"', '"ownex"'), encoding="utf-8")

        with patch.object(IrBuilder, "build_function", wraps=IrBuilder.build_function) as build:
            analysis = analyze_crate(crate, cache=CacheManager.open(cache_dir))

        assert [call.args[0].name for call in build.call_args_list] == ["load_owner"]
        after = json.loads((cache_dir / "manifest.json").read_text(encoding="utf-8"))["files"]
        contract_key = str(crate / "src" / "contract.rs")
        assert after[contract_key] == before[contract_key]
        assert after[str(state)] != before[str(state)]
        assert [s.storage_key for s in analysis.contract.state_items] == ["config", "balances", "ownex"]


class TestDegradedModes:
    """Cache problems never fail an analysis"""

    def test_corrupt_artifact_is_a_miss(self, crate, tmp_path):
        cache_dir = tmp_path / "cache"
        first = analyze_crate(crate, cache=CacheManager.open(cache_dir))
        for artifact in (cache_dir / "artifacts").iterdir():
            artifact.write_bytes(b"\xc1not msgpack")

        cache = CacheManager.open(cache_dir)
        second = analyze_crate(crate, cache=cache)

        assert cache.get_stats()["hits"] == 0
        assert findings_of(second) == findings_of(first)

    def test_schema_mismatch_discards_manifest(self, crate, tmp_path):
        cache_dir = tmp_path / "cache"
        analyze_crate(crate, cache=CacheManager.open(cache_dir))
        manifest_path = cache_dir / "manifest.json"
        manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
        manifest["schema_version"] = SCHEMA_VERSION + 1
        manifest_path.write_text(json.dumps(manifest), encoding="utf-8")

        assert CacheManager.open(cache_dir).manifest.files == {}

    def test_corrupt_manifest(self, tmp_path):
        cache_dir = tmp_path / "cache"
        cache_dir.mkdir()
        (cache_dir / "manifest.json").write_text("{not json", encoding="utf-8")

        assert CacheManager.open(cache_dir).manifest.files == {}

    def test_unusable_directory_disables_cache(self, crate, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")

        cache = CacheManager.open(blocker / "cache")
        analysis = analyze_crate(crate, cache=cache)

        assert not cache.enabled
        assert cache.lookup("x.rs", "0" * 64) is None
        assert len(analysis.files) == 2

    def test_clear(self, crate, tmp_path):
        cache_dir = tmp_path / "cache"
        analyze_crate(crate, cache=CacheManager.open(cache_dir))

        assert CacheManager.open(cache_dir).clear()
        assert list((cache_dir / "artifacts").iterdir()) == []
        assert CacheManager.open(cache_dir).manifest.files == {}

    def test_hash_contents(self):
        digest = CacheManager.hash_contents("fn a() {}")

        assert len(digest) == 64
        assert digest == CacheManager.hash_contents("fn a() {}")
        assert digest != CacheManager.hash_contents("fn a() { }")


class TestPruning:
    """Entries and artifacts of vanished files do not accumulate"""

    def test_deleted_file_is_dropped(self, crate, tmp_path):
        cache_dir = tmp_path / "cache"
        analyze_crate(crate, cache=CacheManager.open(cache_dir))
        (crate / "src" / "state.rs").unlink()

        analyze_crate(crate, cache=CacheManager.open(cache_dir))

        manifest = json.loads((cache_dir / "manifest.json").read_text(encoding="utf-8"))
        assert list(manifest["files"]) == [str(crate / "src" / "contract.rs")]
        assert len(list((cache_dir / "artifacts").iterdir())) == 1

    def test_changed_file_replaces_its_artifact(self, crate, tmp_path):
        cache_dir = tmp_path / "cache"
        analyze_crate(crate, cache=CacheManager.open(cache_dir))
        state = crate / "src" / "state.rs"
        state.write_text(STATE_RS.replace('"owner"', '"ownex"'), encoding="utf-8")

        analyze_crate(crate, cache=CacheManager.open(cache_dir))

        assert len(list((cache_dir / "artifacts").iterdir())) == 2

    def test_sub_path_run_keeps_other_entries(self, crate, tmp_path):
        cache_dir = tmp_path / "cache"
        analyze_crate(crate, cache=CacheManager.open(cache_dir))

        analyze_crate(crate / "src" / "state.rs", cache=CacheManager.open(cache_dir))

        manifest = json.loads((cache_dir / "manifest.json").read_text(encoding="utf-8"))
        assert len(manifest["files"]) == 2


class TestAttachBodies:
    """Body re-attachment keyed by ordinal, with a same-name fallback"""

    @staticmethod
    def declared(name: str, ordinal: int, body=None) -> FunctionInfo:
        span = SourceSpan(file="lib.rs", start_line=ordinal + 1, start_col=1, end_line=ordinal + 1, end_col=2)
        return FunctionInfo(name=name, params=[], return_type=None, span=span, ordinal=ordinal, body=body)

    def test_by_ordinal(self):
        first, second = object(), object()
        cached = [self.declared("helper", 1), self.declared("helper", 2)]
        fresh = [
            self.declared("other", 0, object()),
            self.declared("helper", 1, first),
            self.declared("helper", 2, second),
        ]

        assert attach_bodies(cached, fresh) == 2
        assert cached[0].body is first
        assert cached[1].body is second

    def test_name_fallback(self):
        body = object()
        cached = [self.declared("helper", 5)]
        fresh = [self.declared("other", 5, object()), self.declared("helper", 0, body)]

        assert attach_bodies(cached, fresh) == 1
        assert cached[0].body is body

    def test_missing_function(self):
        cached = [self.declared("gone", 0)]

        assert attach_bodies(cached, []) == 0
        assert cached[0].body is None


class TestDiscovery:
    def test_prefers_src_and_skips_target(self, write_crate):
        root = write_crate(
            {
                "src/lib.rs": "fn a() {}\n",
                "src/target/generated.rs": "fn b() {}\n",
                "build.rs": "fn main() {}\n",
            }
        )

        assert discover_rs_files(root) == [root / "src" / "lib.rs"]

    def test_single_file(self, write_crate):
        root = write_crate({"one.rs": "fn a() {}\n"})

        assert discover_rs_files(root / "one.rs") == [root / "one.rs"]

    def test_empty_directory(self, tmp_path):
        with pytest.raises(DiscoveryError):
            discover_rs_files(tmp_path)

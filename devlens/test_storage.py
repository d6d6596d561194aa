from concurrent.futures import ThreadPoolExecutor

from devlens.models.records import SavedAnalysisRecord
from devlens.models.schemas import MatchVerdict, Profile, SavedAnalysisIn
from devlens.storage import AnalysisStore


def analysis(identifier, score=None):
    return SavedAnalysisIn(
        identifier=identifier,
        profile_snapshot=Profile(identifier=identifier, display_name=identifier, skills=["Go"]),
        match_snapshot=MatchVerdict(score=score) if score is not None else None,
        job_description="Go developer" if score is not None else None,
    )


class TestAnalysisStore:
    def test_save_assigns_increasing_ids(self, tmp_path):
        store = AnalysisStore(str(tmp_path / "data"))
        first = store.save(analysis("alice", 70))
        second = store.save(analysis("bob"))
        assert (first.id, second.id) == (1, 2)
        assert second.created_at >= first.created_at
        assert first.created_at.tzinfo is not None
        assert (tmp_path / "data" / AnalysisStore.DB_NAME).exists()

    def test_snapshots_stored_as_camel_case_json(self, tmp_path):
        store = AnalysisStore(str(tmp_path))
        store.save(analysis("alice", 70))
        with store.session() as s:
            record = s.query(SavedAnalysisRecord).one()
            assert record.profile_snapshot["displayName"] == "alice"
            assert record.match_snapshot["score"] == 70
            assert record.job_description == "Go developer"

    def test_list_newest_first_and_get(self, tmp_path):
        store = AnalysisStore(str(tmp_path))
        store.save(analysis("alice"))
        store.save(analysis("bob", 40))
        assert [a.identifier for a in store.list()] == ["bob", "alice"]
        fetched = store.get(2)
        assert fetched.match_snapshot.score == 40
        assert fetched.profile_snapshot.skills == ["Go"]
        assert store.get(99) is None

    def test_delete(self, tmp_path):
        store = AnalysisStore(str(tmp_path))
        saved = store.save(analysis("alice"))
        assert store.delete(saved.id) is True
        assert store.delete(saved.id) is False
        assert store.list() == []

    def test_survives_reopening(self, tmp_path):
        AnalysisStore(str(tmp_path)).save(analysis("alice", 55))
        reopened = AnalysisStore(str(tmp_path))
        assert [a.identifier for a in reopened.list()] == ["alice"]
        assert reopened.save(analysis("bob")).id == 2

    def test_empty_store(self, tmp_path):
        assert AnalysisStore(str(tmp_path / "missing")).list() == []

    def test_concurrent_saves_keep_every_record(self, tmp_path):
        store = AnalysisStore(str(tmp_path))

        def save_many(worker):
            return [store.save(analysis(f"user{worker}-{i}")).id for i in range(20)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            ids = [i for batch in pool.map(save_many, range(8)) for i in batch]

        assert sorted(ids) == list(range(1, 161))
        saved = store.list()
        assert len(saved) == 160
        assert len({a.identifier for a in saved}) == 160

import pytest

from faceid.application.identity_service import IdentityService, merge_matches, split_range
from faceid.domain.messages import NO_FACE, SlotState
from faceid.domain.models import MatchResult
from faceid.infrastructure.template_store import TemplateStore
from faceid.infrastructure.worker_pool import WorkerPool

from helpers import FakeFaceService, FakeSource, make_landmark


@pytest.fixture
def source(candidate_faces):
    faces = dict(candidate_faces)
    faces[b"blank"] = None
    return FakeSource(faces)


@pytest.fixture
def service(source, probe_landmark):
    pool = WorkerPool(size=2, source_factory=lambda: source, backend="thread")
    face_service = FakeFaceService({b"probe": probe_landmark, "http://probe": probe_landmark})
    service = IdentityService(face_service, TemplateStore(), pool, timeout=10)
    yield service
    pool.shutdown()


def register_candidates(service, candidate_faces):
    for i, data in enumerate(candidate_faces):
        assert service.register(f"t{i}", data)


class TestSplitRange:

    def test_even_split(self):
        assert split_range(10, 3) == [(0, 3), (4, 6), (7, 9)]

    def test_more_parts_than_items(self):
        assert split_range(2, 4) == [(0, 0), (1, 1)]

    def test_empty(self):
        assert split_range(0, 3) == []

    def test_covers_every_index_once(self):
        ranges = split_range(17, 5)
        covered = [i for start, end in ranges for i in range(start, end + 1)]

        assert covered == list(range(17))


def test_merge_matches_prefers_highest_then_earliest():
    matches = [
        None,
        MatchResult(index=4, confidence=0.95),
        MatchResult(index=9, confidence=0.95),
        MatchResult(index=1, confidence=0.93),
    ]

    assert merge_matches(matches).index == 4
    assert merge_matches([None, None]) is None


def test_identify_finds_matching_template(service, candidate_faces):
    register_candidates(service, candidate_faces)

    result = service.identify(b"probe", work_id="job-1")

    assert result == {"id": "t2", "label": 2, "confidence": 1.0}


def test_identify_persists_updates(service, candidate_faces, source):
    register_candidates(service, candidate_faces)
    service.register("blank", b"blank")

    service.identify(b"probe")

    assert service.store.stats() == {
        SlotState.RAW.value: 0,
        SlotState.FEATURE.value: 5,
        SlotState.NO_FACE.value: 1,
    }
    assert service.store.get("blank") is NO_FACE

    calls = len(source.calls)
    result = service.identify(b"probe")

    assert len(source.calls) == calls
    assert result["id"] == "t2"


def test_identify_by_url(service, candidate_faces):
    register_candidates(service, candidate_faces)

    assert service.identify_url("http://probe")["id"] == "t2"
    assert service.identify_url("http://nobody") is None


def test_identify_without_match(service, candidate_faces):
    for i, data in enumerate(candidate_faces):
        if i != 2:
            service.register(f"t{i}", data)

    assert service.identify(b"probe") is None


def test_identify_probe_without_face(service, candidate_faces, source):
    register_candidates(service, candidate_faces)

    assert service.identify(b"unknown") is None
    assert source.calls == []


def test_identify_empty_store(service):
    assert service.identify(b"probe") is None
    assert not service.pool.started


def test_template_commands(service):
    assert service.register("a", b"one")
    assert not service.register("a", b"two")
    assert service.store.get("a") == b"one"

    assert service.register("a", b"two", force=True)
    assert service.store.get("a") == b"two"

    assert service.has("a")
    assert service.count() == 1
    assert service.unregister("a")
    assert not service.unregister("a")
    assert not service.has("a")

    service.register("b", b"x")
    service.clear()
    assert service.count() == 0


def test_detect_delegates_to_face_service(service, probe_landmark):
    faces = service.detect(b"probe", face=False)

    assert faces == [{"features": probe_landmark.features}]


def test_self_test(service):
    assert service.self_test() == IdentityService.VERSION


def test_reregister_during_identify_keeps_new_image(service, source, probe_landmark):
    source.faces[b"old"] = make_landmark(shift=30.0)
    source.faces[b"new"] = probe_landmark

    def replace_template(data):
        if data == b"old":
            service.register("t0", b"new", force=True)

    source.on_detect = replace_template
    service.register("t0", b"old")

    assert service.identify(b"probe") is None
    assert service.store.get("t0") == b"new"

    source.on_detect = None
    assert service.identify(b"probe") == {"id": "t0", "label": 0, "confidence": 1.0}


def test_match_on_template_removed_during_identify_is_dropped(service, source, probe_landmark):
    source.faces[b"first"] = probe_landmark
    source.faces[b"second"] = probe_landmark

    def remove_template(data):
        if data == b"first":
            service.unregister("t0")

    source.on_detect = remove_template
    service.register("t0", b"first")
    service.register("t1", b"second")

    result = service.identify(b"probe")

    assert result == {"id": "t1", "label": 1, "confidence": 1.0}
    assert not service.has("t0")


def test_shutdown_closes_face_service(source, probe_landmark):
    pool = WorkerPool(size=1, source_factory=lambda: source, backend="thread")
    face_service = FakeFaceService({b"probe": probe_landmark})
    service = IdentityService(face_service, TemplateStore(), pool)
    service.register("t0", b"item2")
    service.identify(b"probe")

    service.shutdown()

    assert face_service.closed
    assert not pool.started

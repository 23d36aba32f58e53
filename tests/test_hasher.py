import pytest

from talisman import git_testing
from talisman.git_readers import new_batch_git_staged_path_reader
from talisman.hasher import (
    DefaultSHA256Hasher,
    GitBatchSHA256Hasher,
    collective_sha256_hash,
    destroy_hashers,
    make_hasher,
)


@pytest.fixture(autouse=True)
def _clean_hashers():
    yield
    destroy_hashers()


class _FakeReader:
    def __init__(self, contents):
        self.contents = contents
        self.started = False
        self.stopped = False

    def start(self):
        self.started = True

    def read(self, expr):
        if expr not in self.contents:
            raise OSError(expr)
        return self.contents[expr]

    def shutdown(self):
        self.stopped = True


def test_should_return_correct_file_hash(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    hasher = DefaultSHA256Hasher()
    assert (
        hasher.collective_sha256_hash(["some_file.pem"])
        == "87139cc4d975333b25b6275f97680604add51b84eb8f4a3b9dcbbc652e6f27ac"
    )
    assert (
        hasher.collective_sha256_hash(["test/some_file.pem"])
        == "25bd31a28bf9d4e06327f1c4a5cab2260574ae508803f66adcc393350e994866"
    )


def test_should_return_empty_file_hash_when_no_paths_passed():
    assert (
        DefaultSHA256Hasher().collective_sha256_hash([])
        == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
    )


def test_unreadable_path_hashes_like_empty_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "empty.txt").write_bytes(b"")
    reader = _FakeReader({"empty.txt": b""})
    assert collective_sha256_hash(["empty.txt"], reader.read) == collective_sha256_hash(
        ["empty.txt"], lambda path: reader.read("missing")
    )


def test_contents_change_the_hash(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "a.txt").write_bytes(b"one")
    before = DefaultSHA256Hasher().collective_sha256_hash(["a.txt"])
    (tmp_path / "a.txt").write_bytes(b"two")
    after = DefaultSHA256Hasher().collective_sha256_hash(["a.txt"])
    assert before != after
    assert len(after) == 64


def test_git_batch_hasher_matches_disk_hash_for_same_contents(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "a.txt").write_bytes(b"alpha")
    (tmp_path / "b.txt").write_bytes(b"beta")
    reader = _FakeReader({"a.txt": b"alpha", "b.txt": b"beta"})
    hasher = GitBatchSHA256Hasher(reader)
    hasher.start()
    assert reader.started
    assert hasher.collective_sha256_hash(["a.txt", "b.txt"]) == DefaultSHA256Hasher().collective_sha256_hash(
        ["a.txt", "b.txt"]
    )
    hasher.shutdown()
    assert reader.stopped


def test_order_of_paths_matters(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "a.txt").write_bytes(b"alpha")
    (tmp_path / "b.txt").write_bytes(b"beta")
    hasher = DefaultSHA256Hasher()
    assert hasher.collective_sha256_hash(["a.txt", "b.txt"]) != hasher.collective_sha256_hash(
        ["b.txt", "a.txt"]
    )


def test_make_hasher_caches_per_mode(tmp_path):
    first = make_hasher("pattern", str(tmp_path))
    assert make_hasher("pattern", str(tmp_path)) is first
    assert make_hasher("default", str(tmp_path)) is not first
    destroy_hashers()
    assert make_hasher("pattern", str(tmp_path)) is not first


def test_make_hasher_rejects_unknown_mode(tmp_path):
    with pytest.raises(ValueError):
        make_hasher("no-such-mode", str(tmp_path))


def test_staged_hasher_matches_disk(tmp_path, monkeypatch):
    repo = git_testing.init(str(tmp_path / "repo"))
    repo.create_file_with_contents("a.txt", "staged contents\n")
    repo.add("a.txt")
    monkeypatch.chdir(repo.root)
    expected = DefaultSHA256Hasher().collective_sha256_hash(["a.txt"])

    hasher = make_hasher("pre-commit", repo.root)
    assert hasher.collective_sha256_hash(["a.txt"]) == expected

    direct = GitBatchSHA256Hasher(new_batch_git_staged_path_reader(repo.root))
    direct.start()
    try:
        assert direct.collective_sha256_hash(["a.txt"]) == expected
    finally:
        direct.shutdown()
import pytest

from capstan.hashcache import HashCache, parse_hash_cache


def test_round_trip(tmp_path):
    path = tmp_path / "cache.yaml"
    cache = HashCache({"/bin/app": "abc123", "/lib/x.so": "123", "/etc/a b": "true"})
    cache.write_to_file(path)
    assert parse_hash_cache(path) == cache


def test_parsed_is_hash_cache(tmp_path):
    path = tmp_path / "cache.yaml"
    HashCache({"/a": "b"}).write_to_file(path)
    loaded = parse_hash_cache(path)
    assert isinstance(loaded, HashCache)
    assert loaded["/a"] == "b"


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        parse_hash_cache(tmp_path / "missing.yaml")


def test_scalars_kept_as_text(tmp_path):
    path = tmp_path / "cache.yaml"
    path.write_text("/a: 123\n/b: yes\n", encoding="utf-8")
    assert parse_hash_cache(path) == {"/a": "123", "/b": "yes"}


def test_empty_file_gives_empty_cache(tmp_path):
    path = tmp_path / "cache.yaml"
    path.write_text("", encoding="utf-8")
    assert parse_hash_cache(path) == {}


def test_sequence_rejected(tmp_path):
    path = tmp_path / "cache.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        parse_hash_cache(path)
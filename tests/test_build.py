"""End-to-end tests for the image build pipeline."""

import json
import tarfile

import pytest

from hostprocess_image.archive import TarfileArchiver
from hostprocess_image.build import build_image
from hostprocess_image.config import DEFAULT_HIVE_NAMES, BuildConfig
from hostprocess_image.exceptions import HiveCreationError, HiveValidationError
from hostprocess_image.hive import HIVE_SIGNATURE
from hostprocess_image.utils.digest import calculate_file_digest
from hostprocess_image.utils.validator import validate_docker_tar, verify_image_digests
from tests.helpers import (
    FailingHiveCreator,
    FakeHiveCreator,
    RecordingDigestComputer,
    ZeroByteHiveCreator,
    read_json_member,
    read_member,
)


@pytest.fixture
def result(build_config, hive_creator, fixed_time):
    return build_image(build_config, hive_creator, TarfileArchiver(), now=fixed_time)


def test_build_produces_outputs(result, build_config):
    assert result.image_archive == build_config.build_dir / (
        "windows-host-process-containers-base-image.tar"
    )
    assert result.image_archive.is_file()
    assert result.image_id_file == build_config.build_dir / "image-id.txt"
    assert result.image_id == f"sha256:{result.config_hash}"


def test_image_id_file_has_no_newline(result):
    assert result.image_id_file.read_bytes() == result.config_hash.encode()


def test_config_hash_matches_config_content(result):
    manifest = read_json_member(result.image_archive, "manifest.json")
    config_name = manifest[0]["Config"]

    assert config_name == f"{result.config_hash}.json"
    content = read_member(result.image_archive, config_name)
    assert calculate_file_digest(result.image_dir / config_name) == result.config_hash
    assert (result.image_dir / config_name).read_bytes() == content


def test_layer_hash_is_consistent(result):
    manifest = read_json_member(result.image_archive, "manifest.json")
    config = read_json_member(result.image_archive, f"{result.config_hash}.json")
    layer_json = read_json_member(result.image_archive, f"{result.layer_hash}/json")

    assert manifest[0]["Layers"] == [f"{result.layer_hash}/layer.tar"]
    assert config["rootfs"]["diff_ids"] == [f"sha256:{result.layer_hash}"]
    assert layer_json["id"] == result.layer_hash
    assert (result.image_dir / result.layer_hash).is_dir()
    assert calculate_file_digest(result.image_dir / result.layer_hash / "layer.tar") == (
        result.layer_hash
    )


def test_archive_root_layout(result, tmp_path):
    extract_dir = tmp_path / "extracted"
    with tarfile.open(result.image_archive) as tar:
        tar.extractall(extract_dir)

    assert sorted(p.name for p in extract_dir.iterdir()) == sorted(
        ["manifest.json", f"{result.config_hash}.json", result.layer_hash]
    )
    assert sorted(p.name for p in (extract_dir / result.layer_hash).iterdir()) == [
        "VERSION",
        "json",
        "layer.tar",
    ]
    assert (extract_dir / result.layer_hash / "VERSION").read_text() == "1.0"


def test_timestamps_are_shared(result):
    config = read_json_member(result.image_archive, f"{result.config_hash}.json")
    layer_json = read_json_member(result.image_archive, f"{result.layer_hash}/json")

    assert config["created"] == result.created
    assert layer_json["created"] == result.created
    assert config["history"] == [{"created": result.created}]


def test_layer_contains_valid_hives(result, tmp_path):
    layer_tar = result.image_dir / result.layer_hash / "layer.tar"
    with tarfile.open(layer_tar) as tar:
        for name in DEFAULT_HIVE_NAMES:
            member = tar.extractfile(f"Files/Windows/System32/config/{name}")
            assert member is not None
            content = member.read()
            assert len(content) > 0
            assert content.startswith(HIVE_SIGNATURE)
        assert tar.extractfile("Files/LICENSE") is not None


def test_built_archive_validates(result):
    assert validate_docker_tar(result.image_archive) is True
    assert verify_image_digests(result.image_archive) == []


def test_rebuild_succeeds_and_keeps_layer_hash(build_config, fixed_time):
    first = build_image(build_config, FakeHiveCreator(), TarfileArchiver(), now=fixed_time)
    second = build_image(build_config, FakeHiveCreator(), TarfileArchiver())

    assert second.layer_hash == first.layer_hash
    assert verify_image_digests(second.image_archive) == []
    assert second.image_id_file.read_text() == second.config_hash


def test_rebuild_with_same_time_is_reproducible(build_config, fixed_time):
    first = build_image(build_config, FakeHiveCreator(), TarfileArchiver(), now=fixed_time)
    first_archive = calculate_file_digest(first.image_archive)
    second = build_image(build_config, FakeHiveCreator(), TarfileArchiver(), now=fixed_time)

    assert second.config_hash == first.config_hash
    assert calculate_file_digest(second.image_archive) == first_archive


def test_repo_tags_written_to_manifest(tmp_path, license_files, fixed_time):
    config = BuildConfig(
        build_dir=tmp_path / "build", license_files=license_files, repo_tags=["hpc"]
    )
    result = build_image(config, FakeHiveCreator(), TarfileArchiver(), now=fixed_time)

    manifest = read_json_member(result.image_archive, "manifest.json")
    assert manifest[0]["RepoTags"] == ["hpc:latest"]


def test_sam_failure_aborts_build(build_config):
    with pytest.raises(HiveCreationError):
        build_image(build_config, FailingHiveCreator(fail_on="SAM"), TarfileArchiver())

    assert not build_config.image_id_file.exists()
    assert not build_config.image_archive.exists()


def test_zero_byte_hive_rejected(build_config):
    with pytest.raises(HiveValidationError):
        build_image(build_config, ZeroByteHiveCreator(), TarfileArchiver())

    assert not build_config.image_id_file.exists()


def test_failed_build_is_cleaned_by_next_run(build_config, fixed_time):
    with pytest.raises(HiveCreationError):
        build_image(build_config, FailingHiveCreator(fail_on="SECURITY"), TarfileArchiver())

    result = build_image(build_config, FakeHiveCreator(), TarfileArchiver(), now=fixed_time)

    assert verify_image_digests(result.image_archive) == []
    layer_json = json.loads((result.image_dir / result.layer_hash / "json").read_text())
    assert layer_json["id"] == result.layer_hash


def test_digest_facility_hashes_layer_then_config(build_config, fixed_time):
    digests = RecordingDigestComputer()

    result = build_image(
        build_config,
        FakeHiveCreator(),
        TarfileArchiver(),
        digest_computer=digests,
        now=fixed_time,
    )

    assert digests.hashed == [
        ("layer.tar", result.layer_hash),
        ("config.json", result.config_hash),
    ]

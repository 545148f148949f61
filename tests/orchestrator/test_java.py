"""Unit tests for the Java backend helpers (no protoc required)."""

from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from librarian.orchestrator.backends.java import (
    CLIRR_FILENAME,
    JavaBackend,
    clean_api_output,
    clean_library,
    extract_version,
    module_name,
    plugin_wrappers,
    protoc_options,
    restructure_output,
    unzip,
    write_clirr_ignores,
)
from librarian.orchestrator.errors import GenerationError, MissingOutputError
from librarian.orchestrator.execution.sources import SourceBundle
from librarian.orchestrator.models.config import API, JavaPackage, Library


def test_module_name() -> None:
    assert module_name("secretmanager") == "google-cloud-secretmanager"
    assert module_name("google-cloud-kms") == "google-cloud-kms"


@pytest.mark.parametrize(
    ("api_path", "expected"),
    [
        ("google/cloud/secretmanager/v1", "v1"),
        ("google/cloud/secretmanager/v1beta2", "v1beta2"),
        ("google/cloud/vision", ""),
    ],
)
def test_extract_version(api_path: str, expected: str) -> None:
    assert extract_version(api_path) == expected


def test_protoc_options_default_transport(tmp_path: Path) -> None:
    options = protoc_options("", tmp_path / "proto", tmp_path / "grpc", tmp_path / "gapic")

    assert options == [
        f"--java_out={tmp_path / 'proto'}",
        f"--java_grpc_out={tmp_path / 'grpc'}",
        f"--java_gapic_out=metadata:{tmp_path / 'gapic'}",
        "--java_gapic_opt=metadata,transport=grpc+rest,rest-numeric-enums",
    ]


def test_protoc_options_rest_skips_grpc(tmp_path: Path) -> None:
    options = protoc_options("rest", tmp_path / "proto", tmp_path / "grpc", tmp_path / "gapic")

    assert not any(opt.startswith("--java_grpc_out") for opt in options)
    assert options[-1] == "--java_gapic_opt=metadata,transport=rest,rest-numeric-enums"


def test_plugin_wrappers(tmp_path: Path) -> None:
    with plugin_wrappers(None) as env:
        assert env is None

    with plugin_wrappers(JavaPackage(generator_jar=str(tmp_path / "gen.jar"))) as env:
        assert env is not None
        wrapper_dir = Path(env["PATH"].split(":")[0])
        script = wrapper_dir / "protoc-gen-java_gapic"
        assert script.is_file()
        assert "com.google.api.generator.Main" in script.read_text()
        assert not (wrapper_dir / "protoc-gen-java_grpc").exists()
    assert not wrapper_dir.exists()


def test_unzip_rejects_traversal(tmp_path: Path) -> None:
    archive = tmp_path / "evil.srcjar"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("../escape.java", "class Escape {}")

    with pytest.raises(GenerationError, match="illegal file path"):
        unzip(archive, tmp_path / "dest")
    assert not (tmp_path / "escape.java").exists()


def test_unzip(tmp_path: Path) -> None:
    archive = tmp_path / "temp-codegen.srcjar"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("src/main/java/com/google/Foo.java", "class Foo {}")

    unzip(archive, tmp_path / "dest")
    assert (tmp_path / "dest/src/main/java/com/google/Foo.java").read_text() == "class Foo {}"


def test_restructure_output(tmp_path: Path, write_tree, list_tree) -> None:
    googleapis = tmp_path / "googleapis"
    proto = googleapis / "google/cloud/secretmanager/v1/service.proto"
    write_tree(googleapis, {"google/cloud/secretmanager/v1/service.proto": "syntax = 'proto3';\n"})
    out = tmp_path / "out"
    write_tree(
        out / "v1",
        {
            "proto/com/google/cloud/secretmanager/v1/SecretOrBuilder.java": "interface SecretOrBuilder {}",
            "proto/com/google/cloud/location/Location.java": "class Location {}",
            "grpc/com/google/cloud/secretmanager/v1/ServiceGrpc.java": "class ServiceGrpc {}",
            "gapic/src/main/java/com/google/cloud/secretmanager/v1/Client.java": "class Client {}",
            "gapic/src/test/java/com/google/cloud/secretmanager/v1/ClientTest.java": "class ClientTest {}",
            "gapic/samples/snippets/generated/src/main/java/Sample.java": "class Sample {}",
        },
    )

    restructure_output(out, "secretmanager", "v1", googleapis, [proto])

    assert list_tree(out) == [
        "google-cloud-secretmanager/src/main/java/com/google/cloud/secretmanager/v1/Client.java",
        "google-cloud-secretmanager/src/test/java/com/google/cloud/secretmanager/v1/ClientTest.java",
        "grpc-google-cloud-secretmanager-v1/src/main/java/com/google/cloud/secretmanager/v1/ServiceGrpc.java",
        f"proto-google-cloud-secretmanager-v1/{CLIRR_FILENAME}",
        "proto-google-cloud-secretmanager-v1/src/main/java/com/google/cloud/secretmanager/v1/SecretOrBuilder.java",
        "proto-google-cloud-secretmanager-v1/src/main/proto/google/cloud/secretmanager/v1/service.proto",
        "samples/snippets/generated/Sample.java",
    ]


def test_write_clirr_ignores(tmp_path: Path, write_tree) -> None:
    module = tmp_path / "proto-google-cloud-kms-v1"
    write_tree(module, {"src/main/java/com/google/cloud/kms/v1/KeyOrBuilder.java": ""})

    write_clirr_ignores(module)

    content = (module / CLIRR_FILENAME).read_text()
    assert content.count("<differenceType>7012</differenceType>") == 3
    assert "<className>com/google/cloud/kms/v1/*OrBuilder</className>" in content


def test_write_clirr_ignores_preserves_existing(tmp_path: Path, write_tree) -> None:
    module = tmp_path / "proto-google-cloud-kms-v1"
    write_tree(module, {CLIRR_FILENAME: "maintained", "src/main/java/com/google/cloud/kms/v1/KeyOrBuilder.java": ""})

    write_clirr_ignores(module)
    assert (module / CLIRR_FILENAME).read_text() == "maintained"


def test_clean_library(tmp_path: Path, write_tree, list_tree) -> None:
    out = tmp_path / "out"
    it_test = "google-cloud-kms/src/test/java/com/google/cloud/kms/v1/it/ITKmsTest.java"
    write_tree(
        out,
        {
            "google-cloud-kms/src/main/java/Client.java": "",
            it_test: "",
            f"proto-google-cloud-kms-v1/{CLIRR_FILENAME}": "",
            "proto-google-cloud-kms-v1/src/main/java/Key.java": "",
            "grpc-google-cloud-kms-v1/src/main/java/KeyGrpc.java": "",
            "samples/snippets/generated/Sample.java": "",
            "google-cloud-kms/src/main/resources/custom.properties": "",
            "pom.xml": "",
        },
    )
    library = Library(name="kms", output=str(out), keep=["google-cloud-kms/src/main/resources/custom.properties"])

    clean_library(library)

    assert list_tree(out) == [
        "google-cloud-kms/src/main/resources/custom.properties",
        it_test,
        "pom.xml",
        f"proto-google-cloud-kms-v1/{CLIRR_FILENAME}",
    ]


def test_clean_api_output_keeps_other_versions(tmp_path: Path, write_tree, list_tree) -> None:
    out = tmp_path / "out"
    write_tree(
        out,
        {
            "google-cloud-kms/src/main/java/com/google/cloud/kms/v1/KmsClient.java": "",
            "google-cloud-kms/src/main/java/com/google/cloud/kms/v1beta1/KmsClient.java": "",
            "google-cloud-kms/pom.xml": "",
            "proto-google-cloud-kms-v1/src/main/java/Key.java": "",
            "proto-google-cloud-kms-v1beta1/src/main/java/Key.java": "",
            "grpc-google-cloud-kms-v1/src/main/java/KeyGrpc.java": "",
            "grpc-google-cloud-kms-v1beta1/src/main/java/KeyGrpc.java": "",
            "samples/snippets/generated/kms/v1/Sample.java": "",
            "samples/snippets/generated/kms/v1beta1/Sample.java": "",
        },
    )
    library = Library(
        name="kms",
        output=str(out),
        apis=[API(path="google/cloud/kms/v1"), API(path="google/cloud/kms/v1beta1")],
    )

    clean_api_output(library, "google/cloud/kms/v1")

    assert list_tree(out) == [
        "google-cloud-kms/pom.xml",
        "google-cloud-kms/src/main/java/com/google/cloud/kms/v1beta1/KmsClient.java",
        "grpc-google-cloud-kms-v1beta1/src/main/java/KeyGrpc.java",
        "proto-google-cloud-kms-v1beta1/src/main/java/Key.java",
        "samples/snippets/generated/kms/v1beta1/Sample.java",
    ]
    assert not (out / "proto-google-cloud-kms-v1").exists()
    assert not (out / "google-cloud-kms/src/main/java/com/google/cloud/kms/v1").exists()


async def test_clean_api_requires_output() -> None:
    library = Library(name="kms", apis=[API(path="google/cloud/kms/v1")])

    with pytest.raises(MissingOutputError):
        await JavaBackend().clean_api(library, "google/cloud/kms/v1")


async def test_generate_requires_version(tmp_path: Path) -> None:
    library = Library(name="vision", output=str(tmp_path / "out"), apis=[API(path="google/cloud/vision")])

    with pytest.raises(GenerationError, match="cannot extract version"):
        await JavaBackend().generate([library], SourceBundle(googleapis=tmp_path))


async def test_format_skipped_without_formatter(tmp_path: Path, write_tree) -> None:
    write_tree(tmp_path / "out", {"Foo.java": "class Foo{}"})
    library = Library(name="kms", output=str(tmp_path / "out"), java=JavaPackage(skip_format=True, formatter_jar="f"))

    await JavaBackend().format(library)
    await JavaBackend().format(library.model_copy(update={"java": None}))

    assert (tmp_path / "out" / "Foo.java").read_text() == "class Foo{}"

import json
import sys

import pytest
from google.protobuf import descriptor_pb2

from protoc_render.config import GeneratorConfig, InOutConfig
from protoc_render.descriptor_set import load_descriptor_set
from protoc_render.errors import DescriptorSetError, OutputNotEmpty, RenderError
from protoc_render.generator import generate, generate_from_descriptor_set
from protoc_render.main import main
from protoc_render.renderer.scripted import _SiblingFinder

from proto_factory import make_file, make_message


def _descriptor_set() -> descriptor_pb2.FileDescriptorSet:
    return descriptor_pb2.FileDescriptorSet(file=[
        make_file("a.proto", package="pkg", messages=[make_message("User")]),
        make_file("sub/b.proto", package="pkg.sub"),
    ])


def _write_descriptor_set(path) -> None:
    path.write_bytes(_descriptor_set().SerializeToString())


def _template_root(root, extension="txt"):
    root.mkdir()
    (root / "config.json").write_text(json.dumps({"file_extension": extension}))
    (root / "file.j2").write_text("{% for m in messages %}{{ m.name }}{% endfor %}")
    return root


def _script_root(root):
    root.mkdir()
    (root / "config.yaml").write_text("file_extension: py\ngenerated_header: []\n")
    (root / "main.py").write_text(
        "def render_file(context, output):\n"
        "    output.line(context.package)\n"
    )
    return root


class TestLoadDescriptorSet:
    def test_round_trip(self, tmp_path):
        path = tmp_path / "set.pb"
        _write_descriptor_set(path)
        loaded = load_descriptor_set(path)
        assert [f.name for f in loaded.file] == ["a.proto", "sub/b.proto"]

    def test_missing(self, tmp_path):
        with pytest.raises(DescriptorSetError, match="Failed to read"):
            load_descriptor_set(tmp_path / "missing.pb")

    def test_garbage(self, tmp_path):
        path = tmp_path / "bad.pb"
        path.write_bytes(b"\xff\xff\xff")
        with pytest.raises(DescriptorSetError, match="Failed to decode"):
            load_descriptor_set(path)


class TestGenerate:
    def test_templates_and_scripts(self, tmp_path):
        descriptor_path = tmp_path / "set.pb"
        _write_descriptor_set(descriptor_path)
        config = GeneratorConfig(
            descriptor_set_path=descriptor_path,
            templates=[InOutConfig(_template_root(tmp_path / "tpl"), tmp_path / "out_tpl")],
            scripts=[InOutConfig(_script_root(tmp_path / "scr"), tmp_path / "out_scr")],
        )
        written = generate(config)
        assert len(written) == 4
        assert (tmp_path / "out_tpl" / "a.txt").read_text().endswith("User")
        assert (tmp_path / "out_scr" / "sub" / "b.py").read_text() == "pkg.sub\n"

    def test_multiple_outputs_for_one_kind(self, tmp_path):
        first = _template_root(tmp_path / "rs", "rs")
        second = _template_root(tmp_path / "kt", "kt")
        config = GeneratorConfig(
            descriptor_set_path=tmp_path / "unused.pb",
            templates=[
                InOutConfig(first, tmp_path / "out_rs"),
                InOutConfig(second, tmp_path / "out_kt"),
            ],
        )
        generate_from_descriptor_set(config, _descriptor_set())
        assert (tmp_path / "out_rs" / "a.rs").exists()
        assert (tmp_path / "out_kt" / "sub" / "b.kt").exists()

    def test_nothing_configured(self, tmp_path):
        config = GeneratorConfig(descriptor_set_path=tmp_path / "missing.pb")
        assert generate(config) == []

    def test_output_not_empty(self, tmp_path):
        output = tmp_path / "out"
        output.mkdir()
        (output / "existing.txt").write_text("x")
        config = GeneratorConfig(
            descriptor_set_path=tmp_path / "unused.pb",
            templates=[InOutConfig(_template_root(tmp_path / "tpl"), output)],
        )
        with pytest.raises(OutputNotEmpty):
            generate_from_descriptor_set(config, _descriptor_set())

    def test_creates_missing_output(self, tmp_path):
        output = tmp_path / "deep" / "out"
        config = GeneratorConfig(
            descriptor_set_path=tmp_path / "unused.pb",
            templates=[InOutConfig(_template_root(tmp_path / "tpl"), output)],
        )
        generate_from_descriptor_set(config, _descriptor_set())
        assert (output / "a.txt").exists()

    def test_overlay_file(self, tmp_path):
        root = tmp_path / "tpl"
        root.mkdir()
        (root / "config.json").write_text(json.dumps({"file_extension": "txt", "generated_header": []}))
        (root / "file.j2").write_text(
            "{% for m in messages %}{{ m.overlay('table', 'none') }}{% endfor %}"
        )
        overlay = tmp_path / "overlay.yaml"
        overlay.write_text("by_target:\n  pkg.User:\n    table: users\n")
        config = GeneratorConfig(
            descriptor_set_path=tmp_path / "unused.pb",
            templates=[InOutConfig(root, tmp_path / "out", [overlay])],
        )
        generate_from_descriptor_set(config, _descriptor_set())
        assert (tmp_path / "out" / "a.txt").read_text() == "users"

    def test_failed_script_is_unloaded(self, tmp_path):
        root = tmp_path / "scr"
        root.mkdir()
        (root / "config.yaml").write_text("file_extension: py\n")
        (root / "main.py").write_text(
            "import failing_render_sibling\n"
            "def render_file(context, output):\n"
            "    raise ValueError('no output')\n"
        )
        (root / "failing_render_sibling.py").write_text("")
        config = GeneratorConfig(
            descriptor_set_path=tmp_path / "unused.pb",
            scripts=[InOutConfig(root, tmp_path / "out")],
        )
        with pytest.raises(RenderError):
            generate_from_descriptor_set(config, _descriptor_set())
        assert not any(isinstance(f, _SiblingFinder) for f in sys.meta_path)
        assert "failing_render_sibling" not in sys.modules


class TestMain:
    def test_success(self, tmp_path, capsys):
        descriptor_path = tmp_path / "set.pb"
        _write_descriptor_set(descriptor_path)
        root = _template_root(tmp_path / "tpl")
        with pytest.raises(SystemExit) as info:
            main([
                "--descriptor-set", str(descriptor_path),
                "--template", str(root), str(tmp_path / "out"),
            ])
        assert info.value.code == 0
        assert "Done! 2 file(s) written" in capsys.readouterr().out

    def test_failure(self, tmp_path, capsys):
        root = _template_root(tmp_path / "tpl")
        with pytest.raises(SystemExit) as info:
            main([
                "--descriptor-set", str(tmp_path / "missing.pb"),
                "--template", str(root), str(tmp_path / "out"),
            ])
        assert info.value.code == 1
        assert "FATAL: Failed to read descriptor set" in capsys.readouterr().err

from dataclasses import FrozenInstanceError

import pytest

from protoc_render.context.metadata import (
    MetadataBuilder,
    PackageFile,
    PackageTreeNode,
    create_package_file_tree,
)


class TestPerDirectory:
    def test_root_lists_direct_files_only(self):
        builder = MetadataBuilder()
        builder.append_files(["file1.txt", "test/file2.txt", "test/sub/file4.txt"])
        context = builder.build()
        assert context.directory == ""
        assert context.file_names == ("file1",)
        assert context.file_names_with_ext == ("file1.txt",)

    def test_subdirectory_lists_its_own_files(self):
        builder = MetadataBuilder("test")
        builder.append_files(["file1.txt", "test/file2.txt", "test/file3.txt", "test/sub/file4.txt"])
        context = builder.build()
        assert context.directory == "test"
        assert context.file_names == ("file2", "file3")

    def test_direct_subdirectories(self):
        builder = MetadataBuilder()
        builder.append_subdirectories(["test", "test/sub", "other", "other/sub", "other/sub/inner"])
        assert builder.build().subdirectories == ("test", "other")

    def test_nested_subdirectories(self):
        builder = MetadataBuilder("other/sub")
        builder.append_subdirectories(["test", "test/sub", "other", "other/sub", "other/sub/inner"])
        assert builder.build().subdirectories == ("inner",)

    def test_root_is_never_a_subdirectory(self):
        builder = MetadataBuilder()
        builder.push_subdirectory("")
        assert builder.build().subdirectories == ()

    def test_backslashes(self):
        builder = MetadataBuilder("test")
        builder.push_file("test\\file2.txt")
        assert builder.build().file_names_with_ext == ("file2.txt",)

    def test_empty(self):
        context = MetadataBuilder("nothing").build()
        assert context.file_names == ()
        assert context.subdirectories == ()
        assert context.package_files_full == ()
        assert context.package_file_tree == {}


class TestPackageFiles:
    def test_tree(self):
        tree = create_package_file_tree({
            "0.1.2": "file0",
            "0.1": "file1",
            "0.3": "file2",
        })
        assert tree == {
            "0": PackageTreeNode(children={
                "1": PackageTreeNode(file_name="file1", children={
                    "2": PackageTreeNode(file_name="file0"),
                }),
                "3": PackageTreeNode(file_name="file2"),
            }),
        }

    def test_single_component(self):
        assert create_package_file_tree({"pkg-root": "pkg-root.txt"}) == {
            "pkg-root": PackageTreeNode(file_name="pkg-root.txt"),
        }

    def test_full_list_keeps_order(self):
        builder = MetadataBuilder()
        builder.append_package_files({"test": "test.txt", "test.sub": "test-sub.txt"})
        context = builder.build()
        assert context.package_files_full == (
            PackageFile(package="test", file_name="test.txt"),
            PackageFile(package="test.sub", file_name="test-sub.txt"),
        )
        assert context.package_file_tree["test"].file_name == "test.txt"
        assert context.package_file_tree["test"].children["sub"].file_name == "test-sub.txt"

    def test_to_dict(self):
        builder = MetadataBuilder()
        builder.append_package_files({"a.b": "a-b.txt"})
        data = builder.build().to_dict()
        assert data["package_files_full"] == ({"package": "a.b", "file_name": "a-b.txt"},)
        assert data["package_file_tree"]["a"]["children"]["b"]["file_name"] == "a-b.txt"


class TestFreeze:
    def test_no_mutation_after_build(self):
        builder = MetadataBuilder()
        builder.build()
        with pytest.raises(RuntimeError):
            builder.push_file("file.txt")
        with pytest.raises(RuntimeError):
            builder.append_package_files({})
        with pytest.raises(RuntimeError):
            builder.build()

    def test_context_is_frozen(self):
        context = MetadataBuilder().build()
        with pytest.raises(FrozenInstanceError):
            context.directory = "other"

    def test_lists_are_tuples(self):
        builder = MetadataBuilder()
        builder.push_file("file.txt")
        builder.append_package_files({"pkg": "pkg.txt"})
        context = builder.build()
        assert isinstance(context.file_names, tuple)
        assert isinstance(context.package_files_full, tuple)
        with pytest.raises(AttributeError):
            context.file_names_with_ext.append("other.txt")

    def test_tree_nodes_are_frozen(self):
        tree = create_package_file_tree({"a.b": "a-b.txt"})
        with pytest.raises(FrozenInstanceError):
            tree["a"].file_name = "other.txt"
        with pytest.raises(FrozenInstanceError):
            tree["a"].children["b"].children = {}

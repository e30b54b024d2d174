"""
Tests for the tagged JSON task store.
"""

import copy
import json
import os
from unittest.mock import patch

import pytest

from taskmaster.core.store import json_store
from taskmaster.core.store.errors import TasksFileCorruptedError
from taskmaster.core.store.json_store import (
    is_plain_document,
    is_tagged_document,
    read_json,
    update_document,
    update_tag,
    write_json,
)


def _leftovers(directory):
    return sorted(p.name for p in directory.iterdir() if p.suffix in (".tmp", ".lock"))


class TestDocumentShapes:
    def test_plain_document(self):
        assert is_plain_document({"tasks": []})
        assert not is_tagged_document({"tasks": []})

    def test_tagged_document(self):
        doc = {"master": {"tasks": []}, "dev": {"tasks": [], "metadata": {}}}
        assert is_tagged_document(doc)
        assert not is_plain_document(doc)

    def test_empty_object_is_tagged(self):
        assert is_tagged_document({})

    def test_other_shapes(self):
        assert not is_tagged_document({"master": {"items": []}})
        assert not is_tagged_document([])
        assert not is_plain_document({"tasks": "nope"})


class TestReadJson:
    """Tests for read_json."""

    def test_missing_file_returns_none(self, tmp_path):
        assert read_json(tmp_path / "missing.json") is None

    def test_reads_requested_tag(self, tasks_file):
        data = read_json(tasks_file, tag="master")
        assert [t["id"] for t in data["tasks"]] == [1, 2, 3]
        assert data["metadata"]["description"] == "Main"

    def test_uses_current_tag_from_state(self, project_dir, tasks_file):
        (project_dir / ".taskmaster" / "state.json").write_text(
            json.dumps({"currentTag": "feature-auth"})
        )
        assert read_json(tasks_file, project_root=project_dir)["tasks"] == []

    def test_missing_tag_reads_empty(self, tasks_file):
        assert read_json(tasks_file, tag="nope") == {"tasks": [], "metadata": {}}

    def test_plain_document_is_master(self, tmp_path):
        path = tmp_path / "tasks.json"
        path.write_text(json.dumps({"tasks": [{"id": 1, "title": "A"}]}))

        assert read_json(path, tag="master")["tasks"] == [{"id": 1, "title": "A"}]
        assert read_json(path, tag="other") == {"tasks": [], "metadata": {}}

    def test_raw_returns_whole_document(self, tasks_file, tagged_document):
        assert read_json(tasks_file, raw=True) == tagged_document

    def test_result_is_a_copy(self, tasks_file):
        first = read_json(tasks_file, tag="master")
        first["tasks"].clear()
        assert len(read_json(tasks_file, tag="master")["tasks"]) == 3

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "tasks.json"
        path.write_text("{not json")
        with pytest.raises(TasksFileCorruptedError):
            read_json(path)

    def test_non_object_root_raises(self, tmp_path):
        path = tmp_path / "tasks.json"
        path.write_text("[1, 2]")
        with pytest.raises(TasksFileCorruptedError):
            read_json(path)


class TestWriteJson:
    """Tests for write_json."""

    def test_other_tags_are_untouched(self, tasks_file, tagged_document):
        write_json(tasks_file, {"tasks": [{"id": 7, "title": "New"}]}, tag="feature-auth")

        document = json.loads(tasks_file.read_text())
        assert document["master"] == tagged_document["master"]
        assert document["feature-auth"]["tasks"] == [{"id": 7, "title": "New"}]

    def test_writing_master_keeps_other_tag_exactly(self, tasks_file, tagged_document):
        write_json(tasks_file, {"tasks": []}, tag="master")

        document = json.loads(tasks_file.read_text())
        assert document["feature-auth"] == tagged_document["feature-auth"]
        assert document["master"]["tasks"] == []

    def test_metadata_is_merged_and_stamped(self, tasks_file):
        write_json(tasks_file, {"tasks": [], "metadata": {"note": "x"}}, tag="master")

        metadata = json.loads(tasks_file.read_text())["master"]["metadata"]
        assert metadata["created"] == "2024-01-15T10:30:45+00:00"
        assert metadata["description"] == "Main"
        assert metadata["note"] == "x"
        assert "updated" in metadata

    def test_no_temp_or_lock_files_left(self, tasks_file):
        write_json(tasks_file, {"tasks": []}, tag="master")
        assert _leftovers(tasks_file.parent) == []

    def test_caller_data_not_mutated(self, tasks_file):
        data = {"tasks": [{"id": 1, "title": "A"}], "metadata": {"x": 1}}
        snapshot = copy.deepcopy(data)
        write_json(tasks_file, data, tag="master")
        assert data == snapshot

    def test_plain_document_migrates_to_master(self, tmp_path):
        path = tmp_path / "tasks.json"
        path.write_text(json.dumps({"tasks": [{"id": 1, "title": "A"}]}))

        write_json(path, {"tasks": [{"id": 2, "title": "B"}]}, tag="dev")

        document = json.loads(path.read_text())
        assert document["master"]["tasks"] == [{"id": 1, "title": "A"}]
        assert document["dev"]["tasks"] == [{"id": 2, "title": "B"}]
        assert "tasks" not in document

    def test_tagged_data_merges_each_tag(self, tasks_file, tagged_document):
        write_json(tasks_file, {"new-tag": {"tasks": [{"id": 1, "title": "X"}]}})

        document = json.loads(tasks_file.read_text())
        assert set(document) == {"master", "feature-auth", "new-tag"}
        assert document["master"] == tagged_document["master"]

    def test_creates_missing_file(self, tmp_path):
        path = tmp_path / "sub" / "tasks.json"
        write_json(path, {"tasks": []}, tag="master")
        assert json.loads(path.read_text())["master"]["tasks"] == []

    def test_sequential_writes_accumulate(self, tmp_path):
        path = tmp_path / "tasks.json"
        for i in range(1, 6):
            update_tag(
                path,
                "master",
                lambda record, i=i: record["tasks"].append({"id": i, "title": f"T{i}"}),
            )
        ids = [t["id"] for t in json.loads(path.read_text())["master"]["tasks"]]
        assert ids == [1, 2, 3, 4, 5]

    def test_failed_rename_leaves_original_intact(self, tasks_file):
        original = tasks_file.read_text()

        with patch.object(os, "replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError, match="disk full"):
                write_json(tasks_file, {"tasks": []}, tag="master")

        assert tasks_file.read_text() == original
        assert _leftovers(tasks_file.parent) == []

    def test_output_format(self, tmp_path):
        path = tmp_path / "tasks.json"
        write_json(path, {"tasks": [{"id": 1, "title": "Café"}]}, tag="master")
        text = path.read_text(encoding="utf-8")
        assert text.endswith("}\n")
        assert "Café" in text
        assert '\n  "master"' in text

    def test_lock_options_are_passed_on(self, tmp_path):
        path = tmp_path / "tasks.json"
        with patch.object(json_store, "file_lock", wraps=json_store.file_lock) as lock:
            write_json(path, {"tasks": []}, tag="master", lock_options={"max_attempts": 3})
        assert lock.call_args.kwargs == {"max_attempts": 3}


class TestUpdateHelpers:
    def test_update_tag_returns_mutator_result(self, tasks_file):
        result = update_tag(tasks_file, "master", lambda record: len(record["tasks"]))
        assert result == 3

    def test_mutator_failure_writes_nothing(self, tasks_file):
        original = tasks_file.read_text()

        def fail(record):
            record["tasks"].clear()
            raise ValueError("no")

        with pytest.raises(ValueError):
            update_tag(tasks_file, "master", fail)
        assert tasks_file.read_text() == original

    def test_update_document_removes_tag(self, tasks_file):
        update_document(tasks_file, lambda document: document.pop("feature-auth"))
        assert set(json.loads(tasks_file.read_text())) == {"master"}

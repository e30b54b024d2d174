"""
Tests for dependency validation and repair.
"""

import copy

import pytest

from taskmaster.core.tasks.dependencies import (
    add_dependency,
    count_all_dependencies,
    ensure_at_least_one_independent_subtask,
    fix_dependencies,
    is_circular_dependency,
    remove_dependency,
    validate_and_fix_dependencies,
    validate_task_dependencies,
)
from taskmaster.core.tasks.errors import (
    DependencyError,
    SubtaskNotFoundError,
    TaskNotFoundError,
)


def _subtasks(*deps):
    return [{"id": i, "title": f"S{i}", "dependencies": d} for i, d in enumerate(deps, 1)]


class TestIsCircularDependency:
    """Tests for is_circular_dependency."""

    def test_two_task_cycle(self):
        tasks = [{"id": 1, "dependencies": [2]}, {"id": 2, "dependencies": [1]}]
        assert is_circular_dependency(tasks, 1)

    def test_chain_is_not_a_cycle(self):
        tasks = [
            {"id": 1, "dependencies": [2]},
            {"id": 2, "dependencies": [3]},
            {"id": 3, "dependencies": []},
        ]
        assert not is_circular_dependency(tasks, 1)

    def test_self_loop(self):
        assert is_circular_dependency([{"id": 1, "dependencies": [1]}], 1)

    def test_subtask_cycle(self):
        tasks = [{"id": 1, "dependencies": [], "subtasks": _subtasks([2], [3], [1])}]
        assert is_circular_dependency(tasks, "1.1")

    def test_subtask_chain(self):
        tasks = [{"id": 1, "dependencies": [], "subtasks": _subtasks([], [1], [2])}]
        assert not is_circular_dependency(tasks, "1.1")
        assert not is_circular_dependency(tasks, "1.3")

    def test_cycle_through_subtask_and_tasks(self):
        tasks = [
            {"id": 1, "dependencies": ["2.2"]},
            {"id": 2, "dependencies": [], "subtasks": _subtasks([], [3])},
            {"id": 3, "dependencies": [1]},
        ]
        # Task 2 has no subtask 3, so subtask 2.2 depends on top-level task 3
        assert is_circular_dependency(tasks, 1)
        assert is_circular_dependency(tasks, "2.2")

    def test_additional_edges(self):
        tasks = [{"id": 1, "dependencies": []}, {"id": 2, "dependencies": [1]}]
        assert not is_circular_dependency(tasks, 1)
        assert is_circular_dependency(tasks, 1, additional_edges=[(1, 2)])


class TestValidateAndFixDependencies:
    """Tests for validate_and_fix_dependencies."""

    def test_end_to_end_scenario(self):
        data = {
            "tasks": [
                {"id": 1, "dependencies": [1, 1, 99]},
                {"id": 2, "dependencies": [1], "subtasks": [{"id": 1, "dependencies": [99]}]},
            ]
        }

        assert validate_and_fix_dependencies(data) is True
        assert 1 not in data["tasks"][0]["dependencies"]
        assert 99 not in data["tasks"][0]["dependencies"]
        assert data["tasks"][1]["subtasks"][0]["dependencies"] == []
        assert data["tasks"][1]["dependencies"] == [1]

    def test_second_pass_changes_nothing(self, sample_tasks):
        data = {"tasks": copy.deepcopy(sample_tasks)}
        data["tasks"][2]["dependencies"] = [3, 1, 1, "2.9", 2, 7]

        assert validate_and_fix_dependencies(data) is True
        after_first = copy.deepcopy(data)
        assert validate_and_fix_dependencies(data) is False
        assert data == after_first

    def test_duplicates_keep_first_occurrence(self):
        data = {"tasks": [{"id": 1, "dependencies": []}, {"id": 2, "dependencies": [1, "1", 1]}]}
        validate_and_fix_dependencies(data)
        assert data["tasks"][1]["dependencies"] == [1]

    def test_clean_data_is_unchanged(self, sample_tasks):
        data = {"tasks": copy.deepcopy(sample_tasks)}
        assert validate_and_fix_dependencies(data) is False
        assert data["tasks"] == sample_tasks

    def test_tagged_document_fixes_each_tag(self):
        data = {
            "master": {"tasks": [{"id": 1, "dependencies": [2]}]},
            "dev": {"tasks": [{"id": 1, "dependencies": []}, {"id": 2, "dependencies": [1]}]},
        }
        assert validate_and_fix_dependencies(data) is True
        # Task 2 exists only in dev, so master's reference is dangling
        assert data["master"]["tasks"][0]["dependencies"] == []
        assert data["dev"]["tasks"][1]["dependencies"] == [1]

    def test_cycles_are_left_alone(self):
        data = {"tasks": [{"id": 1, "dependencies": [2]}, {"id": 2, "dependencies": [1]}]}
        assert validate_and_fix_dependencies(data) is False

    @pytest.mark.parametrize("data", [None, [], {}, {"tasks": "x"}, {"master": {"x": 1}}])
    def test_malformed_input_returns_false(self, data):
        assert validate_and_fix_dependencies(data) is False

    def test_never_writes(self, tmp_path):
        path = tmp_path / "tasks.json"
        data = {"tasks": [{"id": 1, "dependencies": [1]}]}
        assert validate_and_fix_dependencies(data, tasks_path=path) is True
        assert not path.exists()


class TestValidateTaskDependencies:
    def test_reports_each_kind(self):
        tasks = [
            {"id": 1, "dependencies": [1]},
            {"id": 2, "dependencies": [99]},
            {"id": 3, "dependencies": [4]},
            {"id": 4, "dependencies": [3]},
        ]
        result = validate_task_dependencies(tasks)

        assert not result.valid
        kinds = sorted((issue.type, issue.task_id) for issue in result.issues)
        assert kinds == [("circular", "4"), ("missing", "2"), ("self", "1")]

    def test_valid(self, sample_tasks):
        result = validate_task_dependencies(sample_tasks)
        assert result.valid
        assert result.issues == []


class TestFixDependencies:
    def test_counts_and_breaks_cycles(self):
        data = {
            "tasks": [
                {"id": 1, "dependencies": [1, 2]},
                {"id": 2, "dependencies": [1, 1, 42]},
                {"id": 3, "dependencies": [], "subtasks": _subtasks([5])},
            ]
        }
        stats = fix_dependencies(data)

        assert stats.self_dependencies_removed == 1
        assert stats.duplicate_dependencies_removed == 1
        assert stats.non_existent_dependencies_removed == 2
        assert stats.circular_dependencies_fixed == 1
        assert stats.tasks_fixed == 2
        assert stats.subtasks_fixed == 1
        assert stats.changes_made
        assert validate_task_dependencies(data["tasks"]).valid

    def test_nothing_to_fix(self, sample_tasks):
        stats = fix_dependencies({"tasks": sample_tasks})
        assert not stats.changes_made
        assert stats.total_removed == 0


class TestEnsureIndependentSubtask:
    def test_clears_first_subtask_when_all_blocked(self):
        data = {"tasks": [{"id": 1, "subtasks": _subtasks([2], [1])}]}
        assert ensure_at_least_one_independent_subtask(data)
        assert data["tasks"][0]["subtasks"][0]["dependencies"] == []
        assert data["tasks"][0]["subtasks"][1]["dependencies"] == [1]

    def test_leaves_startable_tasks_alone(self, sample_tasks):
        assert not ensure_at_least_one_independent_subtask({"tasks": sample_tasks})


class TestEditDependencies:
    """Tests for add_dependency and remove_dependency."""

    def test_add_keeps_list_sorted(self, sample_tasks):
        sample_tasks.append({"id": 4, "title": "Docs", "dependencies": ["2.2", 3]})

        assert add_dependency(sample_tasks, 4, 1) is True
        assert add_dependency(sample_tasks, 4, "2.1") is True
        assert sample_tasks[3]["dependencies"] == [1, 3, "2.1", "2.2"]

    def test_add_existing_returns_false(self, sample_tasks):
        assert add_dependency(sample_tasks, 3, "1") is False

    def test_add_sibling_by_plain_number(self, sample_tasks):
        sample_tasks[1]["subtasks"][0]["dependencies"] = []
        sample_tasks[1]["subtasks"].append({"id": 3, "title": "S3", "dependencies": []})

        assert add_dependency(sample_tasks, "2.3", 2) is True
        assert sample_tasks[1]["subtasks"][2]["dependencies"] == [2]

    def test_add_rejects_cycle(self, sample_tasks):
        with pytest.raises(DependencyError, match="circular"):
            add_dependency(sample_tasks, 1, 3)

    def test_add_rejects_self(self, sample_tasks):
        with pytest.raises(DependencyError, match="itself"):
            add_dependency(sample_tasks, 3, 3)

    def test_add_rejects_missing_dependency(self, sample_tasks):
        with pytest.raises(DependencyError, match="does not exist"):
            add_dependency(sample_tasks, 3, 42)

    def test_add_to_missing_task(self, sample_tasks):
        with pytest.raises(TaskNotFoundError):
            add_dependency(sample_tasks, 42, 1)
        with pytest.raises(SubtaskNotFoundError):
            add_dependency(sample_tasks, "2.9", 1)

    def test_remove(self, sample_tasks):
        assert remove_dependency(sample_tasks, 3, "2") is True
        assert sample_tasks[2]["dependencies"] == [1]
        assert remove_dependency(sample_tasks, 3, 2) is False

    def test_count_all_dependencies(self, sample_tasks):
        assert count_all_dependencies(sample_tasks) == 4

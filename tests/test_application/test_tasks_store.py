"""
Tests for TasksStore
"""
import pytest

from pilotage.application.tasks import TasksStore, TaskValidationError
from pilotage.infrastructure.db.models import TaskModel
from pilotage.infrastructure.remote.gateway import RemoteAPIError

from tests.conftest import OTHER_USER_ID, USER_ID


@pytest.fixture
def store(gateway, organization):
    return TasksStore(gateway, USER_ID, organization.id)


class TestCreate:
    def test_defaults(self, store):
        task = store.create("  Préparer le bilan ")

        assert task.title == "Préparer le bilan"
        assert (task.status, task.priority, task.type) == ("todo", "medium", "single")
        assert task.progress is None
        assert store.tasks[0].id == task.id

    def test_new_task_is_listed_first(self, store):
        first = store.create("Première")
        second = store.create("Seconde")

        assert [t.id for t in store.tasks] == [second.id, first.id]

    def test_project_starts_at_zero_progress(self, store):
        project = store.create("Déménagement", type="project", progress=40)
        assert project.progress == 0

    def test_subtask_requires_parent(self, store):
        with pytest.raises(TaskValidationError, match="tâche parente"):
            store.create("Cartons", type="subtask")

    def test_subtask_with_parent(self, store):
        project = store.create("Déménagement", type="project")
        subtask = store.create("Cartons", type="subtask", parent_task_id=project.id, tags=["maison"])

        assert store.subtasks_of(project.id) == [subtask]
        assert subtask.tags == ["maison"]

    @pytest.mark.parametrize("payload, message", [
        ({"status": "done"}, "Statut invalide"),
        ({"priority": "urgent"}, "Priorité invalide"),
        ({"type": "epic"}, "Type de tâche invalide"),
        ({"estimated_duration": -5}, "durée estimée"),
        ({"color": "red"}, "Champs inconnus"),
    ])
    def test_invalid_payload(self, store, payload, message):
        with pytest.raises(TaskValidationError, match=message):
            store.create("Tâche", **payload)

    def test_empty_title(self, store):
        with pytest.raises(TaskValidationError, match="titre"):
            store.create("   ")

    def test_requires_user(self, gateway):
        with pytest.raises(TaskValidationError, match="non connecté"):
            TasksStore(gateway, None).create("Tâche")


class TestFetch:
    def test_own_and_organization_tasks(self, store, db_session, organization):
        db_session.add_all([
            TaskModel(title="Mienne", user_id=USER_ID),
            TaskModel(title="Partagée", user_id=OTHER_USER_ID, organization_id=organization.id),
            TaskModel(title="Privée de Bob", user_id=OTHER_USER_ID),
        ])
        db_session.commit()

        titles = {t.title for t in store.fetch_tasks()}

        assert titles == {"Mienne", "Partagée"}

    def test_without_user(self, gateway):
        assert TasksStore(gateway, None).fetch_tasks() == []


class TestUpdate:
    def test_status_shortcuts(self, store):
        task = store.create("Relancer la banque")

        assert store.mark_ongoing(task.id).status == "ongoing"
        assert store.mark_completed(task.id).status == "completed"
        assert store.mark_todo(task.id).status == "todo"
        assert store.get(task.id).status == "todo"

    def test_progress_bounds(self, store):
        project = store.create("Déménagement", type="project")

        assert store.update(project.id, progress=100).progress == 100
        with pytest.raises(TaskValidationError, match="progression"):
            store.update(project.id, progress=101)

    def test_nothing_to_update(self, store):
        task = store.create("Tâche")
        with pytest.raises(TaskValidationError, match="Aucune modification"):
            store.update(task.id)

    def test_failed_update_rolls_back(self, store, gateway, monkeypatch):
        task = store.create("Tâche")

        def broken_update(model, entity_id, **values):
            raise RemoteAPIError("update tasks failed")

        monkeypatch.setattr(gateway, "update", broken_update)
        with pytest.raises(RemoteAPIError):
            store.update(task.id, title="Renommée")

        assert store.get(task.id).title == "Tâche"


class TestRemove:
    def test_remove_drops_subtasks_from_cache(self, store, db_session):
        project = store.create("Déménagement", type="project")
        store.create("Cartons", type="subtask", parent_task_id=project.id)
        single = store.create("Autre")

        store.remove(project.id)

        assert [t.id for t in store.tasks] == [single.id]
        assert db_session.get(TaskModel, project.id) is None


def test_stats_exclude_subtasks(store):
    project = store.create("Déménagement", type="project", priority="high")
    store.create("Cartons", type="subtask", parent_task_id=project.id, priority="high")
    done = store.create("Payer le loyer", priority="high")
    store.mark_completed(done.id)
    ongoing = store.create("Comparer les assurances")
    store.mark_ongoing(ongoing.id)

    assert store.stats() == {
        "total": 3,
        "todo": 1,
        "ongoing": 1,
        "completed": 1,
        "high_priority": 1,
    }

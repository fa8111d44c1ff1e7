"""
Tests for ChangeRouter dispatch of created/renamed/deleted batches.

Each test builds a small addon tree on disk and checks the resulting
registry documents.
"""

import pytest
import shutil
import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, Mock

from core.models.config import SyncSettings
from core.sync.documents import TextDocumentStore
from core.sync.events import EventBatch, EventType, FileSystemEvent
from core.sync.maintenance import DebouncedMaintenanceTrigger
from core.sync.manifest import ManifestRegistryEditor
from core.sync.package_index import PackageIndexEditor
from core.sync.router import ChangeRouter


EMPTY_MANIFEST = "{\n    'name': 'Addon',\n    'data': [\n    ],\n}\n"


def created(*paths: Path) -> EventBatch:
    return EventBatch(
        event_type=EventType.CREATED,
        events=[FileSystemEvent.create_file_created(p) for p in paths]
    )


def deleted(*paths: Path, is_directory: bool = False) -> EventBatch:
    return EventBatch(
        event_type=EventType.DELETED,
        events=[FileSystemEvent.create_file_deleted(p, is_directory=is_directory) for p in paths]
    )


def renamed(old: Path, new: Path, is_directory: bool = False) -> EventBatch:
    return EventBatch(
        event_type=EventType.MOVED,
        events=[FileSystemEvent.create_file_moved(old, new, is_directory=is_directory)]
    )


class TestChangeRouter:

    @pytest.fixture
    def addon(self):
        temp_dir = Path(tempfile.mkdtemp())
        addon = temp_dir / "addon"
        (addon / "models").mkdir(parents=True)
        (addon / "views").mkdir()
        (addon / "__manifest__.py").write_text(EMPTY_MANIFEST)
        (addon / "__init__.py").write_text("from . import models\n")
        (addon / "models" / "__init__.py").write_text("")
        yield addon
        shutil.rmtree(temp_dir, ignore_errors=True)

    @pytest.fixture
    def maintenance(self):
        return Mock(spec=DebouncedMaintenanceTrigger)

    @pytest.fixture
    def settings(self):
        return SyncSettings()

    @pytest.fixture
    def router(self, settings, maintenance):
        store = TextDocumentStore()
        return ChangeRouter(
            manifest_editor=ManifestRegistryEditor(store, settings),
            index_editor=PackageIndexEditor(store, settings),
            settings=settings,
            maintenance=maintenance
        )

    def manifest_text(self, addon: Path) -> str:
        return (addon / "__manifest__.py").read_text()

    def models_index(self, addon: Path) -> str:
        return (addon / "models" / "__init__.py").read_text()

    # Creation

    @pytest.mark.asyncio
    async def test_create_data_file(self, router, addon):
        xml = addon / "views" / "a.xml"
        xml.write_text("<odoo/>")

        changes = await router.on_created(created(xml))

        assert changes == 1
        assert "        'views/a.xml',\n" in self.manifest_text(addon)

    @pytest.mark.asyncio
    async def test_create_module_file(self, router, addon):
        module = addon / "models" / "sale.py"
        module.write_text("")

        await router.on_created(created(module))

        assert self.models_index(addon) == "from . import sale\n"

    @pytest.mark.asyncio
    async def test_create_module_without_index_strict(self, router, addon):
        (addon / "scripts").mkdir()
        script = addon / "scripts" / "tool.py"
        script.write_text("")

        assert await router.on_created(created(script)) == 0
        assert not (addon / "scripts" / "__init__.py").exists()

    @pytest.mark.asyncio
    async def test_create_module_without_index_relaxed(self, maintenance, addon):
        settings = SyncSettings(create_missing_index=True)
        store = TextDocumentStore()
        router = ChangeRouter(
            ManifestRegistryEditor(store, settings),
            PackageIndexEditor(store, settings),
            settings,
            maintenance
        )
        (addon / "wizard").mkdir()
        module = addon / "wizard" / "confirm.py"
        module.write_text("")

        await router.on_created(created(module))

        assert (addon / "wizard" / "__init__.py").read_text() == "from . import confirm\n"

    @pytest.mark.asyncio
    async def test_create_package_marker_promotes_once(self, router, addon):
        (addon / "wizard").mkdir()
        marker = addon / "wizard" / "__init__.py"
        marker.write_text("")

        await router.on_created(created(marker))
        await router.on_created(created(marker))

        assert (addon / "__init__.py").read_text() == "from . import models\nfrom . import wizard\n"

    @pytest.mark.asyncio
    async def test_uppercase_module_suffix_is_not_imported(self, router, addon):
        index_before = self.models_index(addon)
        module = addon / "models" / "Report.PY"
        module.write_text("")

        assert await router.on_created(created(module)) == 0
        assert await router.on_deleted(deleted(module)) == 0
        assert self.models_index(addon) == index_before

    @pytest.mark.asyncio
    async def test_create_manifest_itself_is_not_registered(self, router, addon):
        assert await router.on_created(created(addon / "__manifest__.py")) == 0
        assert (addon / "__init__.py").read_text() == "from . import models\n"

    # Renames

    @pytest.mark.asyncio
    async def test_rename_module(self, router, addon):
        (addon / "models" / "__init__.py").write_text("from . import foo\n")
        (addon / "models" / "bar.py").write_text("")

        await router.on_renamed(renamed(addon / "models" / "foo.py", addon / "models" / "bar.py"))

        index = self.models_index(addon)
        assert "from . import bar" in index
        assert "from . import foo" not in index

    @pytest.mark.asyncio
    async def test_rename_reported_as_create_then_delete(self, router, addon):
        (addon / "models" / "__init__.py").write_text("from . import foo\n")
        (addon / "models" / "bar.py").write_text("")

        await router.on_created(created(addon / "models" / "bar.py"))
        await router.on_deleted(deleted(addon / "models" / "foo.py"))

        assert self.models_index(addon) == "from . import bar\n"

    @pytest.mark.asyncio
    async def test_rename_data_file(self, router, addon):
        (addon / "__manifest__.py").write_text(
            "{\n    'data': [\n        'views/old.xml',\n        'views/keep.xml',\n    ],\n}\n"
        )

        await router.on_renamed(renamed(addon / "views" / "old.xml", addon / "views" / "new.xml"))

        assert self.manifest_text(addon) == (
            "{\n    'data': [\n        'views/new.xml',\n        'views/keep.xml',\n    ],\n}\n"
        )

    @pytest.mark.asyncio
    async def test_rename_data_file_to_module(self, router, addon):
        (addon / "__manifest__.py").write_text("{\n    'data': [\n        'models/x.xml',\n    ],\n}\n")

        await router.on_renamed(renamed(addon / "models" / "x.xml", addon / "models" / "x.py"))

        assert "x.xml" not in self.manifest_text(addon)
        assert self.models_index(addon) == "from . import x\n"

    @pytest.mark.asyncio
    async def test_rename_data_file_across_manifests(self, router, addon):
        (addon / "__manifest__.py").write_text("{\n    'data': [\n        'views/a.xml',\n    ],\n}\n")
        other = addon.parent / "other_addon"
        (other / "views").mkdir(parents=True)
        (other / "__manifest__.py").write_text(EMPTY_MANIFEST)

        await router.on_renamed(renamed(addon / "views" / "a.xml", other / "views" / "a.xml"))

        assert "views/a.xml" not in self.manifest_text(addon)
        assert "        'views/a.xml',\n" in (other / "__manifest__.py").read_text()

    @pytest.mark.asyncio
    async def test_rename_package_directory(self, router, addon):
        new_dir = addon / "core_models"
        (addon / "models").rename(new_dir)

        await router.on_renamed(renamed(addon / "models", new_dir, is_directory=True))

        assert (addon / "__init__.py").read_text() == "from . import core_models\n"

    @pytest.mark.asyncio
    async def test_rename_marker_away_demotes(self, router, addon):
        await router.on_renamed(renamed(
            addon / "models" / "__init__.py",
            addon / "models" / "__init__.py.bak"
        ))

        assert (addon / "__init__.py").read_text() == ""

    # Deletions

    @pytest.mark.asyncio
    async def test_delete_data_file(self, router, addon):
        (addon / "__manifest__.py").write_text("{\n    'data': [\n        'views/a.xml',\n    ],\n}\n")

        await router.on_deleted(deleted(addon / "views" / "a.xml"))

        assert self.manifest_text(addon) == "{\n    'data': [\n    ],\n}\n"

    @pytest.mark.asyncio
    async def test_delete_module_file(self, router, addon):
        (addon / "models" / "__init__.py").write_text("from . import a\nfrom . import b\n")

        await router.on_deleted(deleted(addon / "models" / "a.py"))

        assert self.models_index(addon) == "from . import b\n"

    @pytest.mark.asyncio
    async def test_delete_unclassified_path_as_directory(self, router, addon):
        shutil.rmtree(addon / "models")

        # The feed may not know the path was a directory
        await router.on_deleted(deleted(addon / "models"))

        assert (addon / "__init__.py").read_text() == ""

    @pytest.mark.asyncio
    async def test_delete_package_marker_demotes(self, router, addon):
        (addon / "models" / "__init__.py").unlink()

        await router.on_deleted(deleted(addon / "models" / "__init__.py"))

        assert (addon / "__init__.py").read_text() == ""

    # Ignore filter and maintenance

    @pytest.mark.asyncio
    async def test_ignored_paths_cause_no_mutation(self, router, addon, maintenance):
        cache = addon / "models" / "__pycache__"
        cache.mkdir()
        (cache / "__init__.py").write_text("")
        before_manifest = self.manifest_text(addon)
        before_index = (addon / "__init__.py").read_text()

        changes = await router.on_created(created(
            cache / "sale.py",
            cache / "views.xml",
            cache / "__init__.py",
        ))

        assert changes == 0
        assert router.metrics.events_ignored == 3
        assert self.manifest_text(addon) == before_manifest
        assert (addon / "__init__.py").read_text() == before_index
        assert self.models_index(addon) == ""
        maintenance.trigger.assert_called_once()

    @pytest.mark.asyncio
    async def test_project_under_denylisted_directory_is_routed(self, settings, maintenance):
        temp_dir = Path(tempfile.mkdtemp())
        try:
            addon = temp_dir / "build" / "addon"
            (addon / "views").mkdir(parents=True)
            (addon / "__manifest__.py").write_text("{\n    'data': [\n    ],\n}\n")
            (addon / "views" / "a.xml").write_text("<odoo/>")
            (addon / "__pycache__").mkdir()
            store = TextDocumentStore()
            router = ChangeRouter(
                ManifestRegistryEditor(store, settings),
                PackageIndexEditor(store, settings),
                settings,
                maintenance,
                project_root=addon
            )

            changes = await router.on_created(created(
                addon / "views" / "a.xml",
                addon / "__pycache__" / "b.xml",
            ))

            assert changes == 1
            assert router.metrics.events_ignored == 1
            assert self.manifest_text(addon) == "{\n    'data': [\n        'views/a.xml',\n    ],\n}\n"
        finally:
            shutil.rmtree(temp_dir, ignore_errors=True)

    @pytest.mark.asyncio
    async def test_move_out_of_ignored_directory_registers(self, router, addon):
        (addon / "build").mkdir()
        module = addon / "models" / "sale.py"
        module.write_text("")

        await router.on_renamed(renamed(addon / "build" / "sale.py", module))

        assert self.models_index(addon) == "from . import sale\n"

    @pytest.mark.asyncio
    async def test_maintenance_triggered_once_per_batch(self, router, addon, maintenance):
        files = []
        for name in ("a.py", "b.py", "c.py"):
            path = addon / "models" / name
            path.write_text("")
            files.append(path)

        await router.on_created(created(*files))
        assert maintenance.trigger.call_count == 1

        await router.on_deleted(deleted(*files))
        assert maintenance.trigger.call_count == 2
        assert self.models_index(addon) == ""

    @pytest.mark.asyncio
    async def test_error_in_one_event_does_not_stop_batch(self, router, addon):
        router.manifest_editor.add_file = AsyncMock(side_effect=RuntimeError("disk on fire"))
        module = addon / "models" / "sale.py"
        module.write_text("")

        changes = await router.on_created(created(addon / "views" / "a.xml", module))

        assert changes == 1
        assert router.metrics.errors == 1
        assert "disk on fire" in router.metrics.last_error
        assert self.models_index(addon) == "from . import sale\n"

    @pytest.mark.asyncio
    async def test_router_without_maintenance(self, settings, addon):
        store = TextDocumentStore()
        router = ChangeRouter(
            ManifestRegistryEditor(store, settings),
            PackageIndexEditor(store, settings),
            settings
        )
        module = addon / "models" / "sale.py"
        module.write_text("")

        await router.dispatch(created(module))

        status = router.get_status()
        assert status["batches_dispatched"] == 1
        assert status["batches_by_type"] == {"created": 1}
        assert status["registry_changes"] == 1

"""
Tests for XmlCache - load/save lifecycle, dirty state and notifications.

These tests validate:
- Batch framing of notifications
- Dirty state across mutation, load, clear and save
- Save/load round trip with and without byte-order mark
- Declaration injection when the byte-order mark is suppressed
- External modification and rename handling
- Directive cache maintenance
- Observer detachment when the tree is replaced
"""

import codecs
import os
import stat

import pytest

from domain.document.xml_writer import XmlWriter
from infrastructure.persistence.file_exceptions import DocumentLoadError, DocumentSaveError
from shared.change_types import ModelChangeType
from tests.fakes import touch_newer


def kinds_of(events):
    return [event.kind for event in events]


def serialize(document):
    return XmlWriter().write_to_string(document)


class TestLoad:
    """Loading installs a fresh tree and starts watching."""

    def test_load_emits_single_reloaded(self, cache, events, sample_file, watch_task):
        cache.load(str(sample_file))

        assert kinds_of(events) == [ModelChangeType.RELOADED]
        assert events[0].node is cache.document
        assert cache.file_name == str(sample_file)
        assert cache.is_file
        assert cache.dirty is False
        assert watch_task.watch_path == str(sample_file.parent)
        assert cache.last_modified == os.path.getmtime(sample_file)

    def test_relative_path_resolved_against_cwd(self, cache, sample_file, monkeypatch):
        monkeypatch.chdir(sample_file.parent)
        cache.load("sample.xml")
        assert cache.file_name == str(sample_file)

    def test_directives_from_load(self, cache, sample_file):
        cache.load(str(sample_file))
        assert cache.xslt_file_name == "view.xsl"
        assert cache.xslt_default_output is None

    def test_load_from_source(self, cache, events, tmp_path):
        cache.load_from(b"<r><c/></r>", str(tmp_path / "unsaved.xml"))
        assert cache.document.document_element.name == "r"
        assert cache.file_name == str(tmp_path / "unsaved.xml")
        assert kinds_of(events) == [ModelChangeType.RELOADED]

    def test_malformed_file_leaves_state_unchanged(self, cache, events, sample_file, tmp_path):
        cache.load(str(sample_file))
        document = cache.document
        broken = tmp_path / "broken.xml"
        broken.write_text("<r><unclosed></r>", encoding="utf-8")

        with pytest.raises(DocumentLoadError):
            cache.load(str(broken))

        assert cache.document is document
        assert cache.file_name == str(sample_file)
        assert kinds_of(events) == [ModelChangeType.RELOADED]

    def test_line_info_and_navigator(self, cache, sample_file):
        cache.load(str(sample_file))
        root = cache.document.document_element
        assert cache.get_line_info(root).line_number == 4
        assert cache.get_navigator().getroot().tag == "catalog"

    def test_type_info_map(self, cache, sample_file):
        cache.load(str(sample_file))
        root = cache.document.document_element
        cache.type_info_map = {root: "CatalogType"}
        assert cache.get_type_info(root) == "CatalogType"
        assert cache.get_type_info(root.first_child) is None

        cache.load(str(sample_file))
        assert cache.type_info_map is None


class TestBatchUpdates:
    """Begin/end markers bracket the notifications of a batch."""

    def test_nested_batch_brackets_events(self, cache, events, sample_file):
        cache.load(str(sample_file))
        events.clear()
        root = cache.document.document_element

        cache.begin_update()
        root.set_attribute("a", "1")
        cache.begin_update()
        root.append_child(cache.document.create_element("new"))
        cache.end_update()
        root.set_attribute("a", "2")
        cache.end_update()

        assert kinds_of(events) == [
            ModelChangeType.BEGIN_BATCH_UPDATE,
            ModelChangeType.NODE_INSERTED,
            ModelChangeType.NODE_INSERTED,
            ModelChangeType.NODE_CHANGED,
            ModelChangeType.END_BATCH_UPDATE,
        ]

    def test_batch_markers_carry_document(self, cache, events, sample_file):
        cache.load(str(sample_file))
        events.clear()

        with cache.batch_update():
            cache.document.document_element.set_attribute("a", "1")

        assert events[0].kind == ModelChangeType.BEGIN_BATCH_UPDATE
        assert events[0].node is cache.document
        assert events[-1].kind == ModelChangeType.END_BATCH_UPDATE
        assert events[-1].node is cache.document

    def test_batch_context_closes_on_error(self, cache, events):
        with pytest.raises(ValueError):
            with cache.batch_update():
                raise ValueError("boom")
        assert kinds_of(events) == [
            ModelChangeType.BEGIN_BATCH_UPDATE,
            ModelChangeType.END_BATCH_UPDATE,
        ]


class TestDirtyState:
    """dirty is true exactly while unsaved mutations exist."""

    def test_mutation_sets_dirty(self, cache, events, sample_file):
        cache.load(str(sample_file))
        root = cache.document.document_element

        child = root.append_child(cache.document.create_element("extra"))

        assert cache.dirty is True
        assert events[-1].kind == ModelChangeType.NODE_INSERTED
        assert events[-1].node is child

    def test_remove_reports_removed_node(self, cache, events, sample_file):
        cache.load(str(sample_file))
        root = cache.document.document_element
        book = root.first_child

        root.remove_child(book)

        assert events[-1].kind == ModelChangeType.NODE_REMOVED
        assert events[-1].node is book

    def test_dirty_cleared_by_load(self, cache, sample_file):
        cache.load(str(sample_file))
        cache.document.document_element.set_attribute("a", "1")
        cache.load(str(sample_file))
        assert cache.dirty is False

    def test_dirty_cleared_by_clear(self, cache, events, sample_file, watch_task):
        cache.load(str(sample_file))
        cache.document.document_element.set_attribute("a", "1")
        events.clear()

        cache.clear()

        assert cache.dirty is False
        assert cache.file_name is None
        assert cache.document.document_element is None
        assert cache.xslt_file_name is None
        assert watch_task.watch_path is None
        assert kinds_of(events) == [ModelChangeType.RELOADED]

    def test_dirty_cleared_by_save(self, cache, events, sample_file):
        cache.load(str(sample_file))
        cache.document.document_element.set_attribute("a", "1")

        cache.save()

        assert cache.dirty is False
        assert events[-1].kind == ModelChangeType.SAVED

    def test_failed_save_keeps_dirty(self, cache, sample_file, tmp_path, watch_task):
        cache.load(str(sample_file))
        cache.document.document_element.set_attribute("a", "1")

        with pytest.raises(DocumentSaveError):
            cache.save(str(tmp_path / "missing_dir" / "out.xml"))

        assert cache.dirty is True
        assert cache.file_name == str(sample_file)
        assert watch_task.watch_path == str(sample_file.parent)


class TestSave:
    """Encoding and byte-order-mark policy on save."""

    def test_round_trip_with_bom(self, cache, sample_file):
        cache.load(str(sample_file))
        cache.document.document_element.set_attribute("edited", "yes")
        expected = serialize(cache.document)

        cache.save()
        assert sample_file.read_bytes().startswith(codecs.BOM_UTF8)

        cache.load(str(sample_file))
        assert serialize(cache.document) == expected

    def test_round_trip_without_bom(self, cache, config, sample_file):
        config.set("no_byte_order_mark", True)
        cache.load(str(sample_file))
        expected = serialize(cache.document)

        cache.save()
        assert sample_file.read_bytes().startswith(b"<?xml")

        cache.load(str(sample_file))
        assert serialize(cache.document) == expected

    def test_declaration_added_when_bom_suppressed(self, cache, config, tmp_path):
        config.set("no_byte_order_mark", True)
        path = tmp_path / "plain.xml"
        path.write_text("<r><c>text</c></r>", encoding="utf-8")
        cache.load(str(path))

        cache.save()

        data = path.read_bytes()
        assert data.startswith(b'<?xml version="1.0" encoding="utf-8"?>')
        assert not data.startswith(codecs.BOM_UTF8)
        assert codecs.BOM_UTF8 not in data

    def test_declaration_encoding_filled(self, cache, config, tmp_path):
        config.set("no_byte_order_mark", True)
        path = tmp_path / "noenc.xml"
        path.write_text('<?xml version="1.0"?><r/>', encoding="utf-8")
        cache.load(str(path))

        cache.save()

        assert cache.document.xml_declaration.encoding == "utf-8"
        assert path.read_bytes().startswith(b'<?xml version="1.0" encoding="utf-8"?>')

    def test_declared_encoding_used(self, cache, tmp_path):
        path = tmp_path / "latin.xml"
        path.write_bytes('<?xml version="1.0" encoding="iso-8859-1"?><r>é</r>'.encode("iso-8859-1"))
        cache.load(str(path))

        cache.save()

        assert "é".encode("iso-8859-1") in path.read_bytes()
        cache.load(str(path))
        assert cache.document.document_element.text_content == "é"

    def test_unknown_encoding_falls_back_to_utf8(self, cache, sample_file):
        cache.load(str(sample_file))
        cache.document.xml_declaration.encoding = "x-unknown"
        assert cache.get_encoding() == "utf-8"

    def test_save_as_moves_watch(self, cache, sample_file, tmp_path, watch_task):
        cache.load(str(sample_file))
        target_dir = tmp_path / "copy"
        target_dir.mkdir()
        target = target_dir / "copy.xml"

        cache.save(str(target))

        assert cache.file_name == str(target)
        assert watch_task.watch_path == str(target_dir)
        assert target.exists()

    def test_save_copy_keeps_path_and_dirty(self, cache, sample_file, tmp_path):
        cache.load(str(sample_file))
        cache.document.document_element.set_attribute("a", "1")

        cache.save_copy(str(tmp_path / "backup.xml"))

        assert cache.file_name == str(sample_file)
        assert cache.dirty is True
        assert (tmp_path / "backup.xml").exists()

    def test_save_copy_without_bom_adds_declaration(self, cache, config, events, tmp_path):
        config.set("no_byte_order_mark", True)
        path = tmp_path / "plain.xml"
        path.write_text("<r/>", encoding="utf-8")
        cache.load(str(path))
        events.clear()

        cache.save_copy(str(tmp_path / "copy.xml"))

        assert cache.document.xml_declaration is not None
        assert kinds_of(events) == [ModelChangeType.NODE_INSERTED]
        assert cache.dirty is True
        assert cache.file_name == str(path)
        assert (tmp_path / "copy.xml").read_bytes().startswith(b"<?xml")

    def test_save_without_file_name(self, cache):
        with pytest.raises(DocumentSaveError):
            cache.save()

    def test_watch_suspended_during_write(self, cache, sample_file, watch_task):
        cache.load(str(sample_file))
        starts = watch_task.start_count
        stops = watch_task.stop_count

        cache.save()

        assert watch_task.stop_count == stops + 1
        assert watch_task.start_count == starts + 1
        assert watch_task.is_watching


class TestExternalChanges:
    """File system events reaching the cache."""

    def test_external_change_emits_file_changed(self, cache, sample_file, watch_task, actions):
        cache.load(str(sample_file))
        changed = []
        cache.file_changed.connect(lambda: changed.append(True))

        touch_newer(sample_file, cache.last_modified)
        watch_task.file_changed.emit(str(sample_file))
        actions.fire("reload")

        assert changed == [True]

    def test_locked_file_never_signals(self, cache, sample_file, watch_task, actions, probe):
        cache.load(str(sample_file))
        changed = []
        cache.file_changed.connect(lambda: changed.append(True))
        probe.locked = True

        touch_newer(sample_file, cache.last_modified)
        watch_task.file_changed.emit(str(sample_file))
        for _ in range(3):
            actions.fire("reload")

        assert changed == []
        assert not actions.is_pending("reload")

    def test_rename_marks_dirty(self, cache, events, sample_file, watch_task, actions, tmp_path):
        cache.load(str(sample_file))
        events.clear()

        watch_task.file_renamed.emit(str(sample_file), str(tmp_path / "moved.xml"))
        actions.fire("renamed")

        assert kinds_of(events) == [ModelChangeType.RENAMED]
        assert cache.dirty is True

    def test_rename_of_other_file(self, cache, events, sample_file, watch_task, actions, tmp_path):
        cache.load(str(sample_file))
        events.clear()

        watch_task.file_renamed.emit(str(tmp_path / "a.xml"), str(tmp_path / "b.xml"))

        assert not actions.is_pending("renamed")
        assert events == []
        assert cache.dirty is False


class TestDirectives:
    """The directive cache follows processing instruction edits."""

    TWO_STYLESHEETS = (
        '<?xml-stylesheet href="first.xsl"?>'
        '<?xml-stylesheet href="second.xsl"?>'
        "<r/>"
    )

    def test_removal_adopts_remaining_instance(self, cache, tmp_path):
        path = tmp_path / "two.xml"
        path.write_text(self.TWO_STYLESHEETS, encoding="utf-8")
        cache.load(str(path))
        document = cache.document
        first, second = document.children[0], document.children[1]
        assert cache.xslt_file_name == "first.xsl"

        document.remove_child(first)
        assert cache.xslt_file_name == "second.xsl"

        document.remove_child(second)
        assert cache.xslt_file_name is None

    def test_inserted_output_directive(self, cache, sample_file):
        cache.load(str(sample_file))
        document = cache.document
        pi = document.create_processing_instruction("xsl-output", 'default="out.html"')

        document.insert_before(pi, document.document_element)
        assert cache.xslt_default_output == "out.html"

        pi.value = 'default="other.html"'
        assert cache.xslt_default_output == "other.html"

    def test_nested_directive_adopted(self, cache, sample_file):
        cache.load(str(sample_file))
        document = cache.document
        pi = document.document_element.append_child(
            document.create_processing_instruction("xml-stylesheet", 'type="text/xsl" href="other.xsl"')
        )
        assert cache.xslt_file_name == "other.xsl"

        pi.value = 'href="inner.xsl"'
        assert cache.xslt_file_name == "inner.xsl"


class TestNamespaceChanges:
    """xmlns attribute edits are reported as namespace changes."""

    def test_added_declaration(self, cache, events, sample_file):
        cache.load(str(sample_file))
        root = cache.document.document_element

        attr = root.set_attribute("xmlns:y", "urn:y")

        assert events[-1].kind == ModelChangeType.NAMESPACE_CHANGED
        assert events[-1].node is attr
        assert cache.dirty is True

    def test_changed_declaration(self, cache, events, sample_file):
        cache.load(str(sample_file))
        root = cache.document.document_element

        root.set_attribute("xmlns:x", "urn:changed")

        assert events[-1].kind == ModelChangeType.NAMESPACE_CHANGED

    def test_removed_declaration_reports_element(self, cache, events, sample_file):
        cache.load(str(sample_file))
        root = cache.document.document_element

        root.remove_attribute("xmlns:x")

        assert events[-1].kind == ModelChangeType.NAMESPACE_CHANGED
        assert events[-1].node is root

    def test_ordinary_attribute(self, cache, events, sample_file):
        cache.load(str(sample_file))
        cache.document.document_element.set_attribute("id", "7")
        assert events[-1].kind == ModelChangeType.NODE_INSERTED


class TestTreeReplacement:
    """Replaced trees no longer reach the cache."""

    def test_old_tree_detached_after_load(self, cache, events, sample_file):
        cache.load(str(sample_file))
        old = cache.document
        cache.load(str(sample_file))
        events.clear()

        old.document_element.set_attribute("stale", "1")

        assert events == []
        assert cache.dirty is False

    def test_old_tree_detached_after_clear(self, cache, events, sample_file):
        cache.load(str(sample_file))
        old = cache.document
        cache.clear()
        events.clear()

        old.document_element.set_attribute("stale", "1")

        assert events == []

    def test_expand_includes_replaces_tree(self, cache, events, tmp_path):
        (tmp_path / "part.xml").write_text("<part/>", encoding="utf-8")
        main = tmp_path / "main.xml"
        main.write_text(
            '<root xmlns:xi="http://www.w3.org/2001/XInclude"><xi:include href="part.xml"/></root>',
            encoding="utf-8",
        )
        cache.load(str(main))
        old = cache.document
        events.clear()

        cache.expand_includes()

        assert cache.document is not old
        assert cache.document.document_element.first_child.name == "part"
        assert cache.dirty is True
        assert kinds_of(events) == [ModelChangeType.RELOADED]

        old.document_element.set_attribute("stale", "1")
        assert len(events) == 1


class TestFileAttributes:
    """Read-only pass-through."""

    def test_read_only_round_trip(self, cache, sample_file):
        os.chmod(sample_file, stat.S_IRUSR)
        try:
            assert cache.is_read_only(str(sample_file)) is True
            cache.make_read_write(str(sample_file))
            cache.make_read_write(str(sample_file))
            assert cache.is_read_only(str(sample_file)) is False
        finally:
            os.chmod(sample_file, stat.S_IRUSR | stat.S_IWUSR)


class TestDispose:
    """Disposal stops everything."""

    def test_no_notifications_after_dispose(self, cache, events, sample_file, actions, watch_task):
        cache.load(str(sample_file))
        document = cache.document
        watch_task.file_changed.emit(str(sample_file))
        events.clear()

        cache.dispose()
        document.document_element.set_attribute("late", "1")

        assert events == []
        assert actions.pending == {}
        assert watch_task.watch_path is None

    def test_context_manager(self, config, actions, watch_task, probe, sample_file):
        from application.xml_cache import XmlCache

        with XmlCache(config, actions, watch_task=watch_task, file_probe=probe) as cache:
            cache.load(str(sample_file))
            assert watch_task.is_watching
        assert watch_task.watch_path is None

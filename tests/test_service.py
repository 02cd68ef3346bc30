"""Tests for the background load/save service."""

import os

import pytest

import trilogy_save
from trilogy_save.errors import InvalidMagic
from trilogy_save.service import SaveService


@pytest.fixture
def service():
    with SaveService(max_workers=2) as svc:
        yield svc


@pytest.fixture
def save_path(tmp_path, me1_package):
    path = tmp_path / 'Shepard_01.MassEffectSave'
    path.write_bytes(me1_package)
    return str(path)


class TestFileIO:
    """Synchronous load/save with backups."""

    def test_load_file(self, service, save_path) -> None:
        """A save on disk decodes to a document."""
        doc = service.load_file(save_path)
        assert doc.get_value('Player/m_nLevel') == 60

    def test_missing_file(self, service, tmp_path) -> None:
        """A path that does not exist raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            service.load_file(str(tmp_path / 'nope.sav'))

    def test_save_creates_one_backup(self, service, save_path, me1_package) -> None:
        """The first overwrite backs the file up, later ones do not."""
        doc = service.load_file(save_path)
        doc.set('Player/m_nLevel', 61)
        backup = service.save_file(doc, save_path)
        assert backup is not None
        assert os.path.basename(backup).startswith('Shepard_01.MassEffectSave.backup_')
        with open(backup, 'rb') as f:
            assert f.read() == me1_package

        doc.set('Player/m_nLevel', 62)
        assert service.save_file(doc, save_path) is None
        assert service.load_file(save_path).get_value('Player/m_nLevel') == 62

    def test_save_without_backup(self, service, save_path, tmp_path) -> None:
        """backup=False writes in place without copying."""
        doc = service.load_file(save_path)
        assert service.save_file(doc, save_path, backup=False) is None
        assert len(list(tmp_path.iterdir())) == 1

    def test_failed_write_leaves_file_untouched(self, service, save_path, me1_package,
                                                monkeypatch) -> None:
        """A write that fails before the final rename keeps the old save and no temp file."""
        doc = service.load_file(save_path)
        doc.set('Player/m_nLevel', 61)

        def fail_replace(src, dst):
            raise OSError('disk full')

        monkeypatch.setattr(os, 'replace', fail_replace)
        with pytest.raises(OSError):
            service.save_file(doc, save_path, backup=False)
        with open(save_path, 'rb') as f:
            assert f.read() == me1_package
        assert not os.path.exists(f'{save_path}.tmp')

    def test_encode_error_leaves_file_untouched(self, service, save_path, me1_package) -> None:
        """A document that cannot be encoded is never written."""
        doc = service.load_file(save_path)
        doc.root.fields.pop()
        with pytest.raises(trilogy_save.SchemaError):
            service.save_file(doc, save_path)
        with open(save_path, 'rb') as f:
            assert f.read() == me1_package


class TestBackgroundWork:
    """Futures returned by submit_load/submit_save."""

    def test_concurrent_loads(self, service, tmp_path) -> None:
        """Several independent slots load in parallel."""
        paths = []
        for i, title in enumerate(['me2', 'me3', 'me2']):
            doc = trilogy_save.blank(title)
            doc.set('Player/Credits', i * 1000)
            path = tmp_path / f'slot{i}.pcsav'
            path.write_bytes(trilogy_save.save(doc))
            paths.append(str(path))

        futures = [service.submit_load(p) for p in paths]
        docs = [f.result(timeout=30) for f in futures]
        assert [d.get_value('Player/Credits') for d in docs] == [0, 1000, 2000]
        assert [d.title.value for d in docs] == ['me2', 'me3', 'me2']

    def test_submit_save_then_load(self, service, tmp_path) -> None:
        """A background save can be read back by a background load."""
        doc = trilogy_save.blank('me3')
        doc.set('DebugName', 'Slot 4')
        path = str(tmp_path / 'slot4.pcsav')
        assert service.submit_save(doc, path).result(timeout=30) is None
        loaded = service.submit_load(path).result(timeout=30)
        assert loaded.get_value('DebugName') == 'Slot 4'

    def test_errors_surface_through_future(self, service, tmp_path) -> None:
        """Codec errors are raised by Future.result()."""
        path = tmp_path / 'garbage.sav'
        path.write_bytes(b'GVAS' + bytes(64))
        with pytest.raises(InvalidMagic):
            service.submit_load(str(path)).result(timeout=30)

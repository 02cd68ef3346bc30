"""Tests for the me1 package adapter."""

import io
import struct
import zipfile

import pytest

import trilogy_save
from trilogy_save import Title
from trilogy_save.errors import (
    CompressionError, IndexOutOfRange, InvalidMagic, SchemaError, SizeMismatch,
    UnexpectedEof, UnknownPropertyType, UnsupportedVersion,
)
from trilogy_save.formats import AdapterState, Me1Adapter, Me1Container
from trilogy_save.properties import (
    ArrayProperty, BoolProperty, Field, IntProperty, ObjectProperty, StructProperty,
)


def wrap(package: bytes, *, begin=b'\x01\x00\x00\x00\x00\x00\x00\x00', filler=b'',
         state=b'state bytes', world=None, player_entry='player.sav') -> bytes:
    """Build a shipped-style save: prefix, zip offset, filler, zip archive."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(player_entry, package)
        archive.writestr('state.sav', state)
        if world is not None:
            archive.writestr('WorldSavePackage.sav', world)
    return begin + struct.pack('<I', 12 + len(filler)) + filler + buffer.getvalue()


class TestLoad:
    """Decoding a crafted two-object package."""

    def test_header_and_tables(self, me1_package) -> None:
        """Header fields, names and objects are read from their offsets."""
        doc = trilogy_save.load(me1_package)
        assert doc.title is Title.ME1
        assert doc.header['version'] == 491
        assert doc.names.resolve(0) == 'None'
        assert len(doc.objects) == 2
        assert doc.name_of(doc.objects.get(0).class_name) == 'BioPlayer'
        assert doc.objects.get(0).net_index == 5

    def test_root_holds_one_struct_per_object(self, me1_package) -> None:
        """Each object becomes a struct typed with its class name."""
        doc = trilogy_save.load(me1_package)
        assert [key for key, _ in doc.children()] == ['Player', 'Item0']
        player = doc.get('Player')
        assert doc.name_of(player.struct_name) == 'BioPlayer'

    def test_values(self, me1_package) -> None:
        """Scalars, enums, names, objects and native structs decode to plain values."""
        doc = trilogy_save.load(me1_package)
        assert doc.get_value('Player/m_nLevel') == 60
        assert doc.get_value('Player/m_bFemale') is True
        assert doc.get_value('Player/m_FirstName') == 'Jane'
        assert doc.get_value('Player/m_fXP') == 1250.5
        assert doc.get_value('Player/m_nClassIndex') == 3
        assert doc.get_value('Player/m_eOrigin') == 'ORIGIN_Spacer'
        assert doc.get_value('Player/m_Tag') == 'Shepard'
        assert doc.get_value('Player/m_oCurrentItem') == 1
        assert doc.get_value('Player/m_aItem/0') == 1
        assert doc.get_value('Player/m_vPosition/0') == (1.0, 2.0, 3.0)
        assert doc.get_value('Player/m_SimpleTalents/0/Ranks') == 2
        assert doc.get_value('Player/m_Location') == (1.0, 2.0, 3.0)
        assert doc.get_value('Item0/m_nLevel') == 3

    def test_state_machine_reaches_done(self, me1_package) -> None:
        """The adapter walks through every load state."""
        adapter = Me1Adapter()
        adapter.load(me1_package)
        assert adapter.state is AdapterState.DONE


class TestSave:
    """Encoding back to a package."""

    def test_unmodified_round_trip_is_exact(self, me1_package) -> None:
        """Saving an unedited document reproduces the input bytes."""
        doc = trilogy_save.load(me1_package)
        assert trilogy_save.save(doc) == me1_package

    def test_edit_survives_round_trip(self, me1_package) -> None:
        """Edited values are written and sizes recomputed."""
        doc = trilogy_save.load(me1_package)
        doc.set('Player/m_nLevel', 61)
        doc.set('Player/m_FirstName', 'Jane Alexandra')
        reloaded = trilogy_save.load(trilogy_save.save(doc))
        assert reloaded.get_value('Player/m_nLevel') == 61
        assert reloaded.get_value('Player/m_FirstName') == 'Jane Alexandra'
        assert reloaded.get_value('Item0/m_nLevel') == 3

    def test_new_property_extends_name_table(self, me1_package) -> None:
        """Adding a property with a new name appends it to the name table."""
        doc = trilogy_save.load(me1_package)
        count = len(doc.names)
        doc.get('Item0').fields.insert(0, Field(doc.names.intern('m_bJunk'), BoolProperty(True)))
        reloaded = trilogy_save.load(trilogy_save.save(doc))
        assert len(reloaded.names) == count + 1
        assert reloaded.get_value('Item0/m_bJunk') is True
        assert reloaded.get_value('Item0/m_nLevel') == 3

    def test_root_must_match_object_table(self, me1_package) -> None:
        """A root with a different object count cannot be saved."""
        doc = trilogy_save.load(me1_package)
        doc.root.fields.pop()
        with pytest.raises(SchemaError):
            trilogy_save.save(doc)

    def test_blank_package(self) -> None:
        """An empty package encodes and decodes."""
        doc = trilogy_save.blank('me1')
        reloaded = trilogy_save.load(trilogy_save.save(doc))
        assert reloaded.children() == []
        assert reloaded.header['version'] == 491


class TestMalformed:
    """Header validation and truncation."""

    def test_invalid_magic(self, me1_package) -> None:
        """A wrong signature is rejected before anything else."""
        data = b'\x00\x00\x00\x00' + me1_package[4:]
        with pytest.raises(InvalidMagic):
            trilogy_save.load(data, 'me1')

    def test_unsupported_version(self, me1_package) -> None:
        """A near-miss version is not guessed at."""
        data = bytearray(me1_package)
        struct.pack_into('<H', data, 4, 490)
        with pytest.raises(UnsupportedVersion):
            trilogy_save.load(bytes(data))

    def test_truncation(self, me1_package) -> None:
        """Truncating at any offset raises UnexpectedEof or SizeMismatch."""
        for cut in range(len(me1_package)):
            with pytest.raises((UnexpectedEof, SizeMismatch)):
                trilogy_save.load(me1_package[:cut], 'me1')

    def test_block_size_disagrees_with_properties(self, builder) -> None:
        """An object whose block is longer than its property list is rejected."""
        builder.add_object('BioItem', 'Item0', builder.int_prop('m_nLevel', 3) + builder.end() + b'\x00' * 4)
        with pytest.raises(SizeMismatch):
            trilogy_save.load(builder.build())

    def test_object_entry_with_bad_name(self, me1_package) -> None:
        """Object entries must name existing table entries."""
        doc = trilogy_save.load(me1_package)
        object_offset = struct.unpack_from('<I', me1_package, 0x18)[0]
        data = bytearray(me1_package)
        struct.pack_into('<I', data, object_offset, len(doc.names) + 10)
        with pytest.raises(IndexOutOfRange):
            trilogy_save.load(bytes(data))

    def test_unknown_class_struct_is_kept(self, builder) -> None:
        """Unknown classes decode as plain structs of tagged properties."""
        builder.add_object('SFXUnknown', 'Thing', builder.int_prop('Value', 1) + builder.end())
        doc = trilogy_save.load(builder.build())
        assert doc.get('Thing') == StructProperty(
            doc.names.index_of('SFXUnknown'), [Field(doc.names.index_of('Value'), IntProperty(1))]
        )


class TestArrayKinds:
    """Array element kinds are fixed per property name."""

    def test_unregistered_array_must_hold_structs(self, me1_package) -> None:
        """An int array under a name read back as struct elements is refused."""
        doc = trilogy_save.load(me1_package)
        doc.get('Player').fields.insert(0, Field(
            doc.names.intern('m_NewArr'),
            ArrayProperty('IntProperty', [IntProperty(1), IntProperty(2)]),
        ))
        with pytest.raises(UnknownPropertyType):
            trilogy_save.save(doc)

    def test_registered_array_keeps_its_kind(self, me1_package) -> None:
        """m_aItem always holds object references."""
        doc = trilogy_save.load(me1_package)
        doc.set('Player/m_aItem', ArrayProperty('IntProperty', [IntProperty(1)]))
        with pytest.raises(UnknownPropertyType):
            trilogy_save.save(doc)

        items = [ObjectProperty(1), ObjectProperty(None)]
        doc.set('Player/m_aItem', ArrayProperty('ObjectProperty', items))
        reloaded = trilogy_save.load(trilogy_save.save(doc))
        assert reloaded.get_value('Player/m_aItem/0') == 1
        assert reloaded.get_value('Player/m_aItem/1') is None


class TestContainer:
    """Shipped saves: zip archive behind an opaque prefix."""

    def test_detected_and_decoded(self, me1_package) -> None:
        """The package inside player.sav is decoded; the rest is carried along."""
        data = wrap(me1_package, filler=b'\xAA' * 20, world=b'world bytes')
        assert trilogy_save.detect_title(data) is Title.ME1
        doc = trilogy_save.load(data)
        assert doc.get_value('Player/m_nLevel') == 60
        assert doc.header['container'] == Me1Container(
            begin=b'\x01' + bytes(7), filler=b'\xAA' * 20,
            state=b'state bytes', world_save_package=b'world bytes',
        )

    def test_round_trip_keeps_container(self, me1_package) -> None:
        """Saving rewraps the edited package with the carried entries."""
        doc = trilogy_save.load(wrap(me1_package, filler=b'\x00' * 4))
        doc.set('Player/m_nLevel', 61)
        data = trilogy_save.save(doc)

        assert data[:8] == b'\x01' + bytes(7)
        assert struct.unpack_from('<I', data, 8)[0] == 16
        with zipfile.ZipFile(io.BytesIO(data[16:])) as archive:
            assert sorted(archive.namelist()) == ['player.sav', 'state.sav']
            assert archive.read('state.sav') == b'state bytes'

        reloaded = trilogy_save.load(data)
        assert reloaded.get_value('Player/m_nLevel') == 61
        assert reloaded.header['container'] == doc.header['container']
        assert trilogy_save.save(reloaded) == data

    def test_unedited_package_is_exact(self, me1_package) -> None:
        """The rewrapped player.sav holds the original package bytes."""
        data = trilogy_save.save(trilogy_save.load(wrap(me1_package)))
        with zipfile.ZipFile(io.BytesIO(data[12:])) as archive:
            assert archive.read('player.sav') == me1_package

    def test_bare_package_gains_container(self, me1_package) -> None:
        """Attaching a container to a bare package produces a shipped save."""
        doc = trilogy_save.load(me1_package)
        doc.header['container'] = Me1Container(state=b'\x00' * 8)
        data = trilogy_save.save(doc)
        assert trilogy_save.detect_title(data) is Title.ME1
        assert trilogy_save.load(data).get_value('Item0/m_nLevel') == 3

    def test_missing_entry(self, me1_package) -> None:
        """An archive without player.sav is not an me1 save."""
        with pytest.raises(SchemaError):
            trilogy_save.load(wrap(me1_package, player_entry='other.sav'), 'me1')

    def test_corrupt_archive(self, me1_package) -> None:
        """A damaged archive raises CompressionError."""
        data = bytearray(wrap(me1_package))
        data[-30:] = bytes(30)
        with pytest.raises(CompressionError):
            trilogy_save.load(bytes(data), 'me1')

    def test_zip_offset_out_of_range(self, me1_package) -> None:
        """A zip offset past the end of the file is reported, not guessed at."""
        data = bytearray(wrap(me1_package))
        struct.pack_into('<I', data, 8, len(data) + 100)
        with pytest.raises(InvalidMagic):
            trilogy_save.load(bytes(data))

"""Tests for the me1 Legendary Edition schema."""

import pytest

import trilogy_save
from trilogy_save import Title
from trilogy_save.errors import EncodingError, SchemaError
from trilogy_save.properties import (
    ArrayProperty, BoolProperty, ByteProperty, Field, IntProperty, NativeStructProperty,
    StrProperty, StructProperty,
)


@pytest.fixture
def doc():
    return trilogy_save.blank('me1le')


def opaque(raw: bytes) -> ArrayProperty:
    return ArrayProperty('ByteProperty', [ByteProperty(b) for b in raw])


def item(doc, item_id: int, level: int, mods: int = 0) -> StructProperty:
    n = doc.names.intern
    mod = StructProperty(n('ItemMod'), [
        Field(n('ItemId'), IntProperty(item_id + 100)),
        Field(n('ItemLevel'), ByteProperty(level)),
        Field(n('ManufacturerId'), IntProperty(7)),
        Field(n('Unknown'), opaque(b'\x01\x02\x03\x04')),
    ])
    return StructProperty(n('Item'), [
        Field(n('ItemId'), IntProperty(item_id)),
        Field(n('ItemLevel'), ByteProperty(level)),
        Field(n('ManufacturerId'), IntProperty(3)),
        Field(n('PlotConditionalId'), IntProperty(-1)),
        Field(n('UnknownBool'), BoolProperty(False)),
        Field(n('IsJunk'), BoolProperty(True)),
        Field(n('AttachedMods'), ArrayProperty('StructProperty', [mod] * mods)),
    ])


def head_morph(doc) -> StructProperty:
    n = doc.names.intern
    skin_tone = StructProperty(n('VectorParameter'), [
        Field(n('Name'), StrProperty('SkinTone')),
        Field(n('Value'), NativeStructProperty('LinearColor', (0.5, 0.25, 0.125, 1.0))),
    ])
    values = {
        'HairMesh': StrProperty('HMF_HIR_PROTO'),
        'AccessoryMeshes': ArrayProperty('StrProperty', []),
        'MorphFeatures': ArrayProperty('StructProperty', []),
        'OffsetBones': ArrayProperty('StructProperty', []),
        'Lod0Vertices': ArrayProperty('Vector', [NativeStructProperty('Vector', (1.0, 2.0, 3.0))]),
        'Lod1Vertices': ArrayProperty('Vector', []),
        'Lod2Vertices': ArrayProperty('Vector', []),
        'Lod3Vertices': ArrayProperty('Vector', []),
        'ScalarParameters': ArrayProperty('StructProperty', []),
        'VectorParameters': ArrayProperty('StructProperty', [skin_tone]),
        'TextureParameters': ArrayProperty('StructProperty', []),
    }
    return StructProperty(n('HeadMorph'), [Field(n(k), v) for k, v in values.items()])


class TestBlank:
    """Default documents."""

    def test_round_trip(self, doc) -> None:
        """A blank document survives save and load unchanged."""
        data = trilogy_save.save(doc)
        assert trilogy_save.detect_title(data) is Title.ME1LE
        loaded = trilogy_save.load(data)
        assert loaded.header == doc.header
        assert loaded.root == doc.root
        assert trilogy_save.save(loaded) == data

    def test_opaque_runs_default_to_zero(self, doc) -> None:
        """Uninterpreted runs have their fixed length."""
        assert [b.value for b in doc.get('Player/Unknown5').items] == [0] * 9
        assert len(doc.get('Player/Unknown6').items) == 14

    def test_no_head_morph_by_default(self, doc) -> None:
        """The optional head morph starts absent."""
        assert doc.children('Player/HeadMorph') == []


class TestEdits:
    """Player record fields round-trip."""

    def test_player_values(self, doc) -> None:
        """Scalars, byte enums and talents come back as written."""
        doc.set('Player/IsFemale', True)
        doc.set('Player/Level', 60)
        doc.set('Player/FirstName', 'Jane')
        doc.set('Player/Origin', 2)
        doc.set('Player/Notoriety', 1)
        doc.set('Player/Credits', 999999)
        doc.set('Player/HealthCurrent', 412.5)
        doc.set('Player/Unknown3', opaque(b'\xDE\xAD\xBE\xEF'))
        n = doc.names.intern
        doc.get('Player/SimpleTalents').items.append(StructProperty(n('SimpleTalent'), [
            Field(n('TalentId'), IntProperty(7)),
            Field(n('Ranks'), IntProperty(12)),
        ]))

        loaded = trilogy_save.load(trilogy_save.save(doc))
        assert loaded.get_value('Player/IsFemale') is True
        assert loaded.get_value('Player/Level') == 60
        assert loaded.get_value('Player/FirstName') == 'Jane'
        assert loaded.get_value('Player/Origin') == 2
        assert loaded.get_value('Player/Notoriety') == 1
        assert loaded.get_value('Player/Credits') == 999999
        assert loaded.get_value('Player/HealthCurrent') == 412.5
        assert loaded.get('Player/Unknown3') == opaque(b'\xDE\xAD\xBE\xEF')
        assert loaded.get_value('Player/SimpleTalents/0/Ranks') == 12

    def test_inventory_items_with_mods(self, doc) -> None:
        """Items keep their level byte and attached mods."""
        doc.get('Player/Inventory/Items').items.extend([item(doc, 1, 10, mods=2), item(doc, 2, 0)])
        loaded = trilogy_save.load(trilogy_save.save(doc))
        assert loaded.get_value('Player/Inventory/Items/0/ItemLevel') == 10
        assert loaded.get_value('Player/Inventory/Items/0/AttachedMods/1/ItemId') == 101
        assert loaded.get('Player/Inventory/Items/0/AttachedMods/0/Unknown') == opaque(b'\x01\x02\x03\x04')
        assert loaded.get_value('Player/Inventory/Items/1/IsJunk') is True

    def test_head_morph_present(self, doc) -> None:
        """A head morph written behind its flag is read back."""
        doc.set('Player/HeadMorph', ArrayProperty('StructProperty', [head_morph(doc)]))
        loaded = trilogy_save.load(trilogy_save.save(doc))
        assert loaded.get_value('Player/HeadMorph/0/HairMesh') == 'HMF_HIR_PROTO'
        assert loaded.get_value('Player/HeadMorph/0/Lod0Vertices/0') == (1.0, 2.0, 3.0)
        assert loaded.get_value('Player/HeadMorph/0/VectorParameters/0/Value') == (0.5, 0.25, 0.125, 1.0)


class TestSchemaChecks:
    """Shape rules of the fixed-layout kinds."""

    def test_opaque_length_is_fixed(self, doc) -> None:
        """An uninterpreted run cannot grow or shrink."""
        doc.get('Player/Unknown3').items.append(ByteProperty(0))
        with pytest.raises(SchemaError):
            trilogy_save.save(doc)

    def test_optional_holds_at_most_one(self, doc) -> None:
        """A flagged optional value has zero or one item."""
        morph = head_morph(doc)
        doc.set('Player/HeadMorph', ArrayProperty('StructProperty', [morph, morph]))
        with pytest.raises(SchemaError):
            trilogy_save.save(doc)

    def test_byte_range(self, doc) -> None:
        """Byte-sized fields only accept 0..255."""
        with pytest.raises(EncodingError):
            doc.set('Player/Origin', 256)

"""
Trilogy Save Editor - me1 Legendary Edition Adapter
=====================================================
The remastered me1 drops the Unreal package and stores its state in the
same chunked container as me2/me3 (version 50), with a fixed-layout
player record.

Several runs of bytes in the player record have no known meaning; they
are kept verbatim as Opaque fields (the `Unknown*` names below) so a
round trip leaves them untouched.
"""

from ..config import ME1LE_MAGIC, ME1LE_SUPPORTED_VERSIONS
from ..document import Title
from ..schema import ListOf, Opaque, OptionalOf, Record, SchemaField as F
from .chunked import ChunkedSchemaAdapter
from .me2 import ME1_PLOT, TIME_STAMP

# ============================================================================
# HEAD MORPH
# ============================================================================

MORPH_FEATURE = Record('MorphFeature', (
    F('Feature', 'str'),
    F('Offset', 'f32'),
))

OFFSET_BONE = Record('OffsetBone', (
    F('Name', 'str'),
    F('Offset', 'vector'),
))

SCALAR_PARAMETER = Record('ScalarParameter', (
    F('Name', 'str'),
    F('Value', 'f32'),
))

VECTOR_PARAMETER = Record('VectorParameter', (
    F('Name', 'str'),
    F('Value', 'color'),
))

TEXTURE_PARAMETER = Record('TextureParameter', (
    F('Name', 'str'),
    F('Value', 'str'),
))

HEAD_MORPH = Record('HeadMorph', (
    F('HairMesh', 'str'),
    F('AccessoryMeshes', ListOf('str')),
    F('MorphFeatures', ListOf(MORPH_FEATURE)),
    F('OffsetBones', ListOf(OFFSET_BONE)),
    F('Lod0Vertices', ListOf('vector')),
    F('Lod1Vertices', ListOf('vector')),
    F('Lod2Vertices', ListOf('vector')),
    F('Lod3Vertices', ListOf('vector')),
    F('ScalarParameters', ListOf(SCALAR_PARAMETER)),
    F('VectorParameters', ListOf(VECTOR_PARAMETER)),
    F('TextureParameters', ListOf(TEXTURE_PARAMETER)),
))

# ============================================================================
# TALENTS AND INVENTORY
# ============================================================================

SIMPLE_TALENT = Record('SimpleTalent', (
    F('TalentId', 'i32'),
    F('Ranks', 'i32'),
))

COMPLEX_TALENT = Record('ComplexTalent', (
    F('TalentId', 'i32'),
    F('Ranks', 'i32'),
    F('MaxRank', 'i32'),
    F('LevelOffset', 'i32'),
    F('LevelsPerRank', 'i32'),
    F('VisualOrder', 'i32'),
    F('PrereqTalentIdArray', ListOf('i32')),
    F('PrereqTalentRankArray', ListOf('i32')),
))

# ItemLevel is a byte: 0 = none, 1..10 = I..X
ITEM_MOD = Record('ItemMod', (
    F('ItemId', 'i32'),
    F('ItemLevel', 'u8'),
    F('ManufacturerId', 'i32'),
    F('Unknown', Opaque(4)),
))

ITEM = Record('Item', (
    F('ItemId', 'i32'),
    F('ItemLevel', 'u8'),
    F('ManufacturerId', 'i32'),
    F('PlotConditionalId', 'i32'),
    F('UnknownBool', 'bool32'),
    F('IsJunk', 'bool32'),
    F('AttachedMods', ListOf(ITEM_MOD)),
))

INVENTORY = Record('Inventory', (
    F('Equipped', ListOf(ITEM)),
    F('QuickSlots', ListOf(ITEM)),
    F('Items', ListOf(ITEM)),
    F('SavedBackpackItems', ListOf(ITEM)),
))

# ============================================================================
# PLAYER
# ============================================================================

PLAYER = Record('PlayerRecord', (
    F('IsFemale', 'bool32'),
    F('LocalizedClassName', 'i32'),
    F('Unknown1', Opaque(1)),
    F('Level', 'i32'),
    F('CurrentXP', 'f32'),
    F('FirstName', 'str'),
    F('LocalizedLastName', 'i32'),
    F('Origin', 'u8'),
    F('Notoriety', 'u8'),
    F('SpecializationBonusId', 'i32'),
    F('Unknown2', Opaque(1)),
    F('TalentPoints', 'i32'),
    F('Unknown3', Opaque(4)),
    F('UnknownString', 'str'),
    F('HeadMorph', OptionalOf(HEAD_MORPH)),
    F('SimpleTalents', ListOf(SIMPLE_TALENT)),
    F('ComplexTalents', ListOf(COMPLEX_TALENT)),
    F('Inventory', INVENTORY),
    F('Credits', 'i32'),
    F('Medigel', 'i32'),
    F('Grenades', 'f32'),
    F('Omnigel', 'f32'),
    F('FaceCode', 'str'),
    F('Unknown4', Opaque(4)),
    F('AutoLevelUpTemplateId', 'i32'),
    F('HealthPerLevel', 'f32'),
    F('Unknown5', Opaque(9)),
    F('Stamina', 'i32'),
    F('Focus', 'i32'),
    F('Precision', 'i32'),
    F('Coordination', 'i32'),
    F('Unknown6', Opaque(14)),
    F('HealthCurrent', 'f32'),
))

SCHEMA = (
    F('BaseLevelName', 'str'),
    F('Difficulty', 'u32'),
    F('SecondsPlayed', 'f32'),
    F('TimeStamp', TIME_STAMP),
    F('Location', 'vector'),
    F('Rotation', 'rotator'),
    F('Player', PLAYER),
    F('Plot', ME1_PLOT),
    F('WorldVariables', 'properties'),
)


class Me1LeAdapter(ChunkedSchemaAdapter):
    title = Title.ME1LE
    magic = ME1LE_MAGIC
    supported_versions = ME1LE_SUPPORTED_VERSIONS
    SCHEMA = SCHEMA

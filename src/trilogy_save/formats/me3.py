"""
Trilogy Save Editor - me3 Adapter
===================================
Schema table for me3 saves (version 59). Builds on the me2 records and
adds the imported me2 plot, war assets and objective markers.
"""

from ..config import ME3_MAGIC, ME3_SUPPORTED_VERSIONS
from ..document import Title
from ..schema import ListOf, Record, SchemaField as F, with_dlc
from .chunked import ChunkedSchemaAdapter
from .me2 import (
    DEPENDENT_DLC, DOOR_RECORD, HOTKEY, LEVEL_RECORD, LOADOUT, ME1_PLOT, PLANET,
    PLOT, PLOT_VARIABLES, POWER, STREAMING_RECORD, TIME_STAMP, WEAPON,
)

DLC_FROM_ASHES = 0x01
DLC_CITADEL = 0x04

ME2_PLOT = Record('Me2PlotTable', PLOT_VARIABLES)

WEAPON_MOD = Record('WeaponModSaveRecord', (
    F('WeaponClassName', 'str'),
    F('WeaponModClassNames', ListOf('str')),
))

PLAYER = Record('PlayerRecord', (
    F('IsFemale', 'bool32'),
    F('PlayerClassName', 'str'),
    F('IsCombatPawn', 'bool32'),
    F('IsInjuredPawn', 'bool32'),
    F('UseCasualAppearance', 'bool32'),
    F('Level', 'i32'),
    F('CurrentXP', 'f32'),
    F('FirstName', 'str'),
    F('LastName', 'i32'),
    F('Origin', 'u32'),
    F('Notoriety', 'u32'),
    F('TalentPoints', 'i32'),
    F('MappedPower1', 'str'),
    F('MappedPower2', 'str'),
    F('MappedPower3', 'str'),
    F('Appearance', 'properties'),
    F('Powers', ListOf(POWER)),
    F('Weapons', ListOf(WEAPON)),
    F('WeaponMods', ListOf(WEAPON_MOD)),
    F('Loadout', LOADOUT),
    F('PrimaryWeapon', 'str'),
    F('SecondaryWeapon', 'str'),
    F('LoadoutWeaponGroups', ListOf('i32')),
    F('HotKeys', ListOf(HOTKEY)),
    F('CurrentHealth', 'f32'),
    F('Credits', 'i32'),
    F('Medigel', 'i32'),
    F('Eezo', 'i32'),
    F('Iridium', 'i32'),
    F('Palladium', 'i32'),
    F('Platinum', 'i32'),
    F('Probes', 'i32'),
    F('CurrentFuel', 'f32'),
    F('Grenades', 'i32'),
    F('FaceCode', 'str'),
    F('ClassFriendlyName', 'i32'),
    F('CharacterGuid', 'str'),
))

HENCHMAN = Record('HenchmanSaveRecord', (
    F('Tag', 'str'),
    F('Powers', ListOf(POWER)),
    F('CharacterLevel', 'i32'),
    F('TalentPoints', 'i32'),
    F('Loadout', LOADOUT),
    F('MappedPower', 'str'),
    F('WeaponMods', ListOf(WEAPON_MOD)),
    F('Grenades', 'i32'),
    F('Weapons', ListOf(WEAPON)),
))

WAR_ASSET = Record('WarAsset', (
    F('AssetId', 'i32'),
    F('Strength', 'i32'),
))

OBJECTIVE_MARKER = Record('ObjectiveMarker', (
    F('MarkerOwnerPath', 'str'),
    F('MarkerOffset', 'vector'),
    F('MarkerLabel', 'i32'),
    F('BoneToAttachTo', 'str'),
    F('MarkerIconType', 'u32'),
))

FROM_ASHES = Record('FromAshesProgress', (
    F('JavikRecruited', 'bool32'),
    F('EchoesFound', ListOf('i32')),
))

CITADEL = Record('CitadelProgress', (
    F('PartyGuests', ListOf('str')),
    F('ArcadeHighScore', 'i32'),
))

SCHEMA = (
    F('DebugName', 'str'),
    F('SecondsPlayed', 'f32'),
    F('Disc', 'i32'),
    F('BaseLevelName', 'str'),
    F('BaseLevelNameDisplayOverrideAsRead', 'str'),
    F('Difficulty', 'u32'),
    F('EndGameState', 'i32'),
    F('TimeStamp', TIME_STAMP),
    F('Location', 'vector'),
    F('Rotation', 'rotator'),
    F('CurrentLoadingTip', 'i32'),
    F('Levels', ListOf(LEVEL_RECORD)),
    F('StreamingRecords', ListOf(STREAMING_RECORD)),
    F('Doors', ListOf(DOOR_RECORD)),
    F('Placeables', ListOf('str')),
    F('Pawns', ListOf('str')),
    F('Player', PLAYER),
    F('Henchmen', ListOf(HENCHMAN)),
    F('Plot', PLOT),
    F('Me1Plot', ME1_PLOT),
    F('Me2Plot', ME2_PLOT),
    F('GalaxyMap', ListOf(PLANET)),
    F('DependentDlc', ListOf(DEPENDENT_DLC)),
    F('WarAssets', ListOf(WAR_ASSET)),
    F('ConversationMode', 'u32'),
    F('ObjectiveMarkers', ListOf(OBJECTIVE_MARKER)),
    F('SavedObjectiveText', 'i32'),
    F('FromAshes', FROM_ASHES, with_dlc(DLC_FROM_ASHES)),
    F('Citadel', CITADEL, with_dlc(DLC_CITADEL)),
    F('WorldVariables', 'properties'),
)


class Me3Adapter(ChunkedSchemaAdapter):
    title = Title.ME3
    magic = ME3_MAGIC
    supported_versions = ME3_SUPPORTED_VERSIONS
    SCHEMA = SCHEMA

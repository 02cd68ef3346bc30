"""
Trilogy Save Editor - me2 Adapter
===================================
Schema table for me2 saves (versions 29 and 30).

Version 30 added the imported me1 plot table. Content gated on DLC is
only present when the corresponding bit is set in the header's DLC flags.
"""

from ..config import ME2_MAGIC, ME2_SUPPORTED_VERSIONS
from ..document import Title
from ..schema import ListOf, Record, SchemaField as F, since, with_dlc
from .chunked import ChunkedSchemaAdapter

# ============================================================================
# DLC FLAGS
# ============================================================================

DLC_SHADOW_BROKER = 0x01
DLC_ARRIVAL = 0x02

# ============================================================================
# SHARED RECORDS (also used by me3)
# ============================================================================

TIME_STAMP = Record('TimeStamp', (
    F('SecondsSinceMidnight', 'i32'),
    F('Day', 'i32'),
    F('Month', 'i32'),
    F('Year', 'i32'),
))

LEVEL_RECORD = Record('LevelRecord', (
    F('LevelName', 'str'),
    F('ShouldBeLoaded', 'bool32'),
    F('ShouldBeVisible', 'bool32'),
))

STREAMING_RECORD = Record('StreamingRecord', (
    F('Name', 'str'),
    F('Active', 'bool32'),
))

DOOR_RECORD = Record('DoorRecord', (
    F('DoorName', 'str'),
    F('CurrentState', 'u32'),
    F('OldState', 'u32'),
))

POWER = Record('PowerSaveRecord', (
    F('PowerName', 'str'),
    F('CurrentRank', 'f32'),
    F('PowerClassName', 'str'),
    F('WheelDisplayIndex', 'i32'),
))

WEAPON = Record('WeaponSaveRecord', (
    F('WeaponClassName', 'str'),
    F('AmmoUsedCount', 'i32'),
    F('TotalAmmo', 'i32'),
    F('CurrentWeapon', 'bool32'),
    F('WasLastWeapon', 'bool32'),
    F('AmmoPowerName', 'str'),
))

LOADOUT = Record('WeaponLoadout', (
    F('AssaultRifle', 'str'),
    F('Shotgun', 'str'),
    F('SniperRifle', 'str'),
    F('SubMachineGun', 'str'),
    F('Pistol', 'str'),
    F('HeavyWeapon', 'str'),
))

HOTKEY = Record('HotKey', (
    F('PawnName', 'str'),
    F('PowerId', 'i32'),
))

QUEST = Record('PlotQuest', (
    F('QuestCounter', 'i32'),
    F('QuestUpdated', 'bool32'),
    F('History', ListOf('i32')),
))

CODEX_PAGE = Record('PlotCodexPage', (
    F('Page', 'i32'),
    F('IsNew', 'bool32'),
))

CODEX = Record('PlotCodex', (
    F('Pages', ListOf(CODEX_PAGE)),
))

PLOT_VARIABLES = (
    F('BoolVariables', 'bitfield'),
    F('IntVariables', ListOf('i32')),
    F('FloatVariables', ListOf('f32')),
)

PLOT = Record('PlotTable', PLOT_VARIABLES + (
    F('QuestProgressCounter', 'i32'),
    F('QuestProgress', ListOf(QUEST)),
    F('QuestIDs', ListOf('i32')),
    F('CodexEntries', ListOf(CODEX)),
    F('CodexIDs', ListOf('i32')),
))

ME1_PLOT = Record('Me1PlotTable', PLOT_VARIABLES)

PLANET = Record('PlanetSaveRecord', (
    F('PlanetId', 'i32'),
    F('Visited', 'bool32'),
    F('Probes', ListOf('vector')),
))

DEPENDENT_DLC = Record('DependentDlc', (
    F('ModuleId', 'i32'),
    F('Name', 'str'),
))

# ============================================================================
# me2 RECORDS
# ============================================================================

PLAYER = Record('PlayerRecord', (
    F('IsFemale', 'bool32'),
    F('PlayerClassName', 'str'),
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
    F('Loadout', LOADOUT),
    F('HotKeys', ListOf(HOTKEY)),
    F('Credits', 'i32'),
    F('Medigel', 'i32'),
    F('Eezo', 'i32'),
    F('Iridium', 'i32'),
    F('Palladium', 'i32'),
    F('Platinum', 'i32'),
    F('Probes', 'i32'),
    F('CurrentFuel', 'f32'),
    F('FaceCode', 'str'),
    F('ClassFriendlyName', 'i32'),
))

HENCHMAN = Record('HenchmanSaveRecord', (
    F('Tag', 'str'),
    F('Powers', ListOf(POWER)),
    F('CharacterLevel', 'i32'),
    F('TalentPoints', 'i32'),
    F('Loadout', LOADOUT),
    F('MappedPower', 'str'),
))

SHADOW_BROKER = Record('ShadowBrokerProgress', (
    F('DossiersUnlocked', ListOf('i32')),
    F('InfoBrokerIntel', 'i32'),
))

ARRIVAL = Record('ArrivalProgress', (
    F('ProjectCountdown', 'f32'),
    F('ObjectiveReached', 'bool32'),
))

SCHEMA = (
    F('DebugName', 'str'),
    F('SecondsPlayed', 'f32'),
    F('Disc', 'i32'),
    F('BaseLevelName', 'str'),
    F('Difficulty', 'u32'),
    F('EndGameState', 'i32'),
    F('TimeStamp', TIME_STAMP),
    F('Location', 'vector'),
    F('Rotation', 'rotator'),
    F('CurrentLoadingTip', 'i32'),
    F('Levels', ListOf(LEVEL_RECORD)),
    F('StreamingRecords', ListOf(STREAMING_RECORD)),
    F('Doors', ListOf(DOOR_RECORD)),
    F('Pawns', ListOf('str')),
    F('Player', PLAYER),
    F('Henchmen', ListOf(HENCHMAN)),
    F('Plot', PLOT),
    F('Me1Plot', ME1_PLOT, since(30)),
    F('GalaxyMap', ListOf(PLANET)),
    F('DependentDlc', ListOf(DEPENDENT_DLC)),
    F('ShadowBroker', SHADOW_BROKER, with_dlc(DLC_SHADOW_BROKER)),
    F('Arrival', ARRIVAL, with_dlc(DLC_ARRIVAL)),
    F('WorldVariables', 'properties'),
)


class Me2Adapter(ChunkedSchemaAdapter):
    title = Title.ME2
    magic = ME2_MAGIC
    supported_versions = ME2_SUPPORTED_VERSIONS
    SCHEMA = SCHEMA

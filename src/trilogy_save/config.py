"""
Trilogy Save Editor - Configuration
=====================================
Central configuration for format constants, codec limits, and defaults.
Edit the values in this file to tune the codec for your environment.
"""

import os

# ============================================================================
# UNREAL PACKAGE CONSTANTS (me1)
# ============================================================================

# Unreal package tag, shared by the me1 package header and the
# compressed chunk block of me2/me3
PACKAGE_TAG = 0x9E2A83C1

# me1 package header: magic, versions, flags, 3 x (count/offset), data offset
ME1_HEADER_SIZE = 32

# Only the shipped PC package version has been reverse-engineered
ME1_SUPPORTED_VERSIONS = frozenset({491})

# Name that terminates every tagged property list
NONE_NAME = 'None'

# Outer me1 save: 8 opaque bytes, uint32 ZipOffset, filler up to ZipOffset,
# then a zip archive holding the package and its companion files
ME1_CONTAINER_HEADER_SIZE = 12
ME1_ZIP_SIGNATURE = b'PK\x03\x04'
ME1_PLAYER_ENTRY = 'player.sav'
ME1_STATE_ENTRY = 'state.sav'
ME1_WORLD_ENTRY = 'WorldSavePackage.sav'

# Timestamp stamped on every rebuilt zip entry
ME1_ZIP_DATE_TIME = (1980, 1, 1, 0, 0, 0)

# ============================================================================
# SCHEMA SAVE CONSTANTS (me1 LE / me2 / me3)
# ============================================================================

# 'ME1L' / 'ME2S' / 'ME3S' read as little-endian uint32
ME1LE_MAGIC = 0x4C314D45
ME2_MAGIC = 0x53324D45
ME3_MAGIC = 0x53334D45

ME1LE_SUPPORTED_VERSIONS = frozenset({50})
ME2_SUPPORTED_VERSIONS = frozenset({29, 30})
ME3_SUPPORTED_VERSIONS = frozenset({59})

# magic(4) + version(4) + dlc flags(4)
SCHEMA_HEADER_SIZE = 12

# Trailing CRC-32 field
CHECKSUM_SIZE = 4

# ============================================================================
# COMPRESSION
# ============================================================================

# Largest uncompressed chunk the games will inflate in one go
DEFAULT_CHUNK_SIZE = 0x20000

# zlib level used when re-compressing; chunk bytes need not match the original
COMPRESSION_LEVEL = 9

# ============================================================================
# CODEC LIMITS
# ============================================================================

# Maximum struct/array nesting accepted by the property decoder.
# Real saves nest a handful of levels deep; anything near this is corrupt.
DEFAULT_MAX_DEPTH = 64

# Single-byte encoding used by positive-length FStrings
LEGACY_ENCODING = 'cp1252'

# ============================================================================
# FILE I/O
# ============================================================================

# Backup naming: <save>.backup_<timestamp>
BACKUP_TIMESTAMP_FORMAT = '%Y%m%d_%H%M%S'

# Worker threads used by SaveService for background load/save
SERVICE_MAX_WORKERS = 4

# ============================================================================
# LOGGING
# ============================================================================

DEFAULT_LOG_LEVEL = os.environ.get('TRILOGY_SAVE_LOG_LEVEL', 'INFO')
LOG_FORMAT = '%(asctime)s : %(levelname)-8s : %(name)s : %(message)s'
LOG_DATE_FORMAT = '%H:%M:%S'
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUP_COUNT = 5

"""
Configuration constants for the media auditor.
"""

# --- File Type Definitions ---
IMAGE_EXTS = {'.jpg', '.jpeg', '.jpe', '.png', '.gif', '.tif', '.tiff', '.heic', '.heif', '.webp'}
CONTAINER_EXTS = {'.mov', '.mp4', '.m4v', '.avi', '.mkv', '.wmv', '.mpg', '.qt'}
SUPPORTED_EXTS = IMAGE_EXTS | CONTAINER_EXTS

# Format name (as reported by the signature detector) -> extensions that are
# considered a match for it. Comparison is done on lowercased suffixes.
FORMAT_EXTENSIONS = {
    'jpeg': {'.jpg', '.jpeg', '.jpe'},
    'png': {'.png'},
    'gif': {'.gif'},
    'tiff': {'.tif', '.tiff'},
    'heic': {'.heic', '.heif'},
    'mp4': {'.mp4', '.m4v'},
    'mov': {'.mov', '.qt'},
    'webp': {'.webp'},
}

# Extension written when a file is corrected to its detected format
PREFERRED_EXTENSIONS = {
    'jpeg': '.jpg',
}

# --- Signature Detection ---
HEADER_SIZE = 12

# ISO base media "ftyp" brands
HEIC_BRANDS = {b'heic', b'mif1'}
MP4_BRANDS = {b'mp41', b'mp42'}
QUICKTIME_BRANDS = {b'qt  '}

# --- Metadata Parsing ---
DATE_TAGS = [
    'EXIF DateTimeOriginal',
    'EXIF DateTimeDigitized',
    'Image DateTime',
]

# Sub-second companions of DATE_TAGS (same order)
SUBSEC_TAGS = [
    'EXIF SubSecTimeOriginal',
    'EXIF SubSecTimeDigitized',
    'EXIF SubSecTime',
]

# Priority: Original -> Encoded -> Tagged
MEDIAINFO_DATE_FIELDS = [
    'recorded_date',
    'encoded_date',
    'tagged_date',
]

EXIFTOOL_DATE_FIELDS = ['CreateDate', 'CreationDate', 'DateTimeOriginal', 'MediaCreateDate']

EXIFTOOL_TAG = 'DateTimeOriginal'

# Seconds before an exiftool invocation is abandoned
EXTERNAL_TOOL_TIMEOUT = 30

# Classic Windows MAX_PATH; longer paths skip the OS tagging provider
TAG_PATH_LIMIT = 260

# --- Renaming ---
NAME_FORMAT = "%Y%m%d_%H%M%S"
MAX_COLLISION_SUFFIX = 999

# --- Progress ---
PROGRESS_MIN_INTERVAL = 100
PROGRESS_EAGER_COUNT = 10

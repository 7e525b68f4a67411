# tag-music: batch BPM / key / loudness tagging for a music library
# Package: tagmusic

__version__ = "1.0.0"
__author__ = "tag-music Contributors"
__description__ = "Analyze MP3/M4A files and write BPM, key and ReplayGain tags in place"

# Module structure:
#   - tagmusic.analyze    : tempo estimation, beat/key/loudness collaborators
#   - tagmusic.repair     : M4A container normalization
#   - tagmusic.tagging    : ID3 / MP4 tag writers
#   - tagmusic.pipeline   : per-file repair -> tempo -> key -> loudness -> tags
#   - tagmusic.scheduler  : file discovery and bounded worker pool
#   - tagmusic.config     : Configuration management
#   - tagmusic.cli        : Command-line entry point

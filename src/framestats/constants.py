# Pixel layout delivered by the decoders (rgb24)
CHANNELS = 3

# Output log settings
DEFAULT_OUTPUT_PATH = "output.csv"
RECORD_LINE_TERMINATOR = "\n"
RECORD_DELIMITER = ","

# Frame indices are unsigned 64-bit and wrap instead of overflowing
INDEX_MODULUS = 2**64

# Decoder backends
DECODER_AV = "av"
DECODER_FFMPEG = "ffmpeg"
DEFAULT_DECODER = DECODER_AV

# Number of threads invoking the frame callback concurrently
DEFAULT_DELIVERY_THREADS = 1

# Log a progress line every N frames
PROGRESS_LOG_INTERVAL_FRAMES = 500

# ffmpeg pipe read settings
FFMPEG_PIX_FMT = "rgb24"
FFMPEG_TERMINATE_TIMEOUT_SEC = 5

DEFAULT_LOG_DIR = "logs"

# Exit codes for the command line entry point
EXIT_OK = 0
EXIT_RUN_FAILED = 1
EXIT_SETUP_FAILED = 2

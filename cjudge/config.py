import os
import tempfile


env = os.environ.get

ERROR_CASE_SAVE_PATH = env('ERROR_CASE_SAVE_PATH', '')  # default empty, which means not save error case

SCRATCH_DIR = env('SCRATCH_DIR', os.path.join(tempfile.gettempdir(), 'cjudge'))
SWEEP_INTERVAL = int(env('SWEEP_INTERVAL', 30 * 60))  # default 30 minutes
FILE_RETENTION = int(env('FILE_RETENTION', 60 * 60))  # default 1 hour
if FILE_RETENTION < SWEEP_INTERVAL:
    raise ValueError('FILE_RETENTION must not be smaller than SWEEP_INTERVAL')

MAX_EXECUTION_TIME = float(env('MAX_EXECUTION_TIME', 5))  # default 5 seconds
COMPILE_TIMEOUT = float(env('COMPILE_TIMEOUT', 10))  # default 10 seconds
# default 0, which means no address space limit. The child only gets what the host allows.
MAX_MEMORY = int(env('MAX_MEMORY', 0))  # in MB
MAX_OUTPUT_BYTES = int(env('MAX_OUTPUT_BYTES', 1024 * 1024))  # per stream, default 1MB
MAX_STDOUT_ERROR_LENGTH = int(env('MAX_STDOUT_ERROR_LENGTH', 10000))
MAX_WORKERS = int(env('MAX_WORKERS', os.cpu_count())) or os.cpu_count()  # default os.cpu_count()

C_COMPILER_PATH = env('C_COMPILER_PATH', 'gcc')
C_COMPILER_FLAGS = env('C_COMPILER_FLAGS', '-lm').split()

HINTS_ENABLED = int(env('HINTS_ENABLED', 1))
HINT_TIMEOUT = float(env('HINT_TIMEOUT', 20))  # per provider, in seconds
HINT_TEMPERATURE = float(env('HINT_TEMPERATURE', 0.7))
GEMINI_API_KEY = env('GEMINI_API_KEY', '')
GEMINI_MODEL = env('GEMINI_MODEL', 'gemini-2.5-flash')
GEMINI_BASE_URL = env('GEMINI_BASE_URL', 'https://generativelanguage.googleapis.com/v1beta')
GROQ_API_KEY = env('GROQ_API_KEY', '')
GROQ_MODEL = env('GROQ_MODEL', 'llama-3.3-70b-versatile')
GROQ_BASE_URL = env('GROQ_BASE_URL', 'https://api.groq.com/openai/v1')
OLLAMA_BASE_URL = env('OLLAMA_BASE_URL', '')  # default empty, which means ollama is not used
OLLAMA_MODEL = env('OLLAMA_MODEL', 'qwen2.5-coder:1.5b-instruct')

if MAX_EXECUTION_TIME <= 0:
    raise ValueError('MAX_EXECUTION_TIME must be positive')

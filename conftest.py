import importlib.util
import platform

# The native backend needs PeachPy and an x86-64 host.
native = importlib.util.find_spec("peachpy") is not None and platform.machine().lower() in (
    "x86_64",
    "amd64",
)

collect_ignore = [] if native else ["operation_jit.py", "array_jit.py", "test_jit.py"]

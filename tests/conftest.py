# tests/conftest.py
import sys, os
# Add project root to sys.path so both `casm_sim` and `cli` are importable
ROOT = os.path.dirname(os.path.dirname(__file__))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

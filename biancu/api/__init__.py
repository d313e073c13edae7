"""HTTP API for the BIAN-CU platform."""

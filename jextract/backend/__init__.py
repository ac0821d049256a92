"""Backend package - Java types, naming, and the ffm and jni printers."""

"""Cipherchat: hybrid RSA/AES end-to-end encrypted chat over an untrusted relay."""

__version__ = "0.1.0"

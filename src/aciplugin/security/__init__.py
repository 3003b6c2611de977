"""Decryption of secrets stored encrypted in the plugin configuration."""

from .decryption import SecretDecryptor, decrypt_secret, load_rsa_private_key

__all__ = ["SecretDecryptor", "decrypt_secret", "load_rsa_private_key"]

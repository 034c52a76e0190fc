"""
Test suite for credential hashing

Verifiers must be deterministic, fixed-length and stable across processes,
since stored verifiers are checked again after a reload.
"""

import hashlib

from bank_ledger.hashing import hash_pin, verify_pin, secrets_match


class TestHashPin:
    """Test PIN verifier derivation"""
    
    def test_known_digest(self):
        """Test the verifier is the hex SHA-256 of the PIN bytes"""
        assert hash_pin("1234") == "03ac674216f3e15c761ee1a5e255f067953623c8b388b4459e13f978d7c846f4"
        assert hash_pin("0000") == hashlib.sha256(b"0000").hexdigest()
    
    def test_fixed_length_and_deterministic(self):
        """Test equal inputs give equal 64-character verifiers"""
        first = hash_pin("9876")
        assert first == hash_pin("9876")
        assert len(first) == 64
        assert len(hash_pin("0001")) == 64
    
    def test_distinct_pins_distinct_verifiers(self):
        """Test every 4-digit PIN maps to its own verifier"""
        verifiers = {hash_pin(f"{n:04d}") for n in range(10000)}
        assert len(verifiers) == 10000
    
    def test_verifier_does_not_contain_pin(self):
        """Test the PIN is not readable from the verifier"""
        assert "4321" not in hash_pin("4321")


class TestVerifyPin:
    """Test PIN verification"""
    
    def test_matching_pin(self):
        assert verify_pin("1234", hash_pin("1234"))
    
    def test_wrong_pin(self):
        assert not verify_pin("1235", hash_pin("1234"))
    
    def test_missing_verifier(self):
        """Test an account without a verifier never authenticates"""
        assert not verify_pin("1234", None)
        assert not verify_pin("1234", "")


class TestSecretsMatch:
    """Test shared secret comparison"""
    
    def test_match(self):
        assert secrets_match("open sesame", "open sesame")
    
    def test_mismatch(self):
        assert not secrets_match("open sesame!", "open sesame")
        assert not secrets_match("", "open sesame")
    
    def test_empty_expected_secret_never_matches(self):
        """Test an unset secret disables the check entirely"""
        assert not secrets_match("", "")
        assert not secrets_match("anything", "")

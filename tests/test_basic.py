"""Basic tests for the DEX arbitrage engine."""

from dexarb import __version__
from dexarb.config import Config
from dexarb.core import ArbitrageEngine, OpportunityDetector, SafetyGuard
from dexarb.dexes import DEX_REGISTRY, OrcaDex, RaydiumDex
from dexarb.errors import AdapterError, ArbitrageError, GuardRejection, InsufficientBalanceError


class TestBasicImports:
    """Test that basic modules can be imported."""

    def test_version(self):
        assert __version__ == "0.1.0"

    def test_core_import(self):
        """Test core package exports."""
        assert ArbitrageEngine is not None
        assert OpportunityDetector is not None
        assert SafetyGuard is not None

    def test_registry(self):
        """Only implemented venues are registered."""
        assert DEX_REGISTRY == {"raydium": RaydiumDex, "orca": OrcaDex}


class TestErrors:
    """Test the error hierarchy."""

    def test_guard_rejections_are_arbitrage_errors(self):
        assert issubclass(InsufficientBalanceError, GuardRejection)
        assert issubclass(GuardRejection, ArbitrageError)

    def test_adapter_error_names_venue(self):
        error = AdapterError("orca", "account not found")
        assert error.venue == "orca"
        assert "orca" in str(error)


class TestConfig:
    """Test configuration defaults."""

    def test_defaults_are_safe(self):
        """Default config never trades real funds."""
        config = Config()
        assert config.safety.simulation_mode is True
        assert config.dex.enabled_venues == ["raydium", "orca"]

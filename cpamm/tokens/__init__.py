"""Asset ledgers: fungible tokens and the wrapped native asset."""

from cpamm.tokens.erc20 import FeeOnTransferToken, Token, deploy_token
from cpamm.tokens.wrapped import WrappedNative

__all__ = ["Token", "FeeOnTransferToken", "WrappedNative", "deploy_token"]

class InputError(ValueError):
    """Raised when an amount or validator set cannot be planned against."""
    pass


class ChainQueryError(Exception):
    """Raised when a single chain's data cannot be fetched."""

    def __init__(self, chain_id: str, message: str):
        super().__init__(f"{chain_id}: {message}")
        self.chain_id = chain_id


class PriceNotAvailableError(Exception):
    """Raised when price data is not available."""
    pass


class ValidatorNotFoundError(LookupError):
    """Raised when an operator address is not in the validator set."""
    pass

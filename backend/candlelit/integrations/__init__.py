from candlelit.integrations.seiue import SeiueClient, SeiueRequestError, build_seiue_client_from_env
from candlelit.integrations.zerowidth import strip_zero_width, zero_decode, zero_encode

__all__ = [
    "SeiueClient",
    "SeiueRequestError",
    "build_seiue_client_from_env",
    "strip_zero_width",
    "zero_decode",
    "zero_encode",
]

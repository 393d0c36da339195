# app/schemas/types.py
from decimal import Decimal
from typing import Annotated

from pydantic import PlainSerializer

# Decimal in, JSON number out
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
Number = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

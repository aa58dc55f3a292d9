from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Literal

from merkledrop_core.merkle.encoding import parse_leaf_encoding
from merkledrop_core.merkle.models import EncodingError


class CsvConfig(BaseModel):
    delimiter: str = Field(default=",", min_length=1, max_length=1)
    encoding: str = "utf-8-sig"
    skip_blank_rows: bool = True


class TreeSourceConfig(BaseModel):
    """Maps CSV columns onto a leaf encoding and names the dump file."""

    columns: list[str] = Field(min_length=1)
    leaf_encoding: list[str] = Field(min_length=1)
    output: str

    @field_validator("leaf_encoding")
    @classmethod
    def validate_leaf_encoding(cls, v: list[str]) -> list[str]:
        try:
            return list(parse_leaf_encoding(v))
        except EncodingError as e:
            raise ValueError(str(e)) from e

    @model_validator(mode="after")
    def check_columns_match_encoding(self) -> "TreeSourceConfig":
        if len(self.columns) != len(self.leaf_encoding):
            raise ValueError(
                f"{len(self.columns)} columns but {len(self.leaf_encoding)} field types"
            )
        return self


class AirdropConfig(TreeSourceConfig):
    columns: list[str] = Field(default_factory=lambda: ["address", "amount", "isTop80"])
    leaf_encoding: list[str] = Field(default_factory=lambda: ["address", "uint256", "bool"])
    output: str = "test/utils/airdropTree.json"


class DistributionConfig(TreeSourceConfig):
    columns: list[str] = Field(default_factory=lambda: ["address", "amount"])
    leaf_encoding: list[str] = Field(default_factory=lambda: ["address", "uint256"])
    output: str = "test/utils/distributionTree.json"


class ProofConfig(BaseModel):
    address_field: int = Field(default=0, ge=0)
    case_sensitive: bool = False


class MerkledropConfig(BaseModel):
    csv: CsvConfig = Field(default_factory=CsvConfig)
    airdrop: AirdropConfig = Field(default_factory=AirdropConfig)
    distribution: DistributionConfig = Field(default_factory=DistributionConfig)
    proof: ProofConfig = Field(default_factory=ProofConfig)
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    log_format: Literal["text", "json"] = "text"

    @model_validator(mode="after")
    def check_address_field(self) -> "MerkledropConfig":
        field = self.proof.address_field
        for name, source in (("airdrop", self.airdrop), ("distribution", self.distribution)):
            if field >= len(source.leaf_encoding) or source.leaf_encoding[field] != "address":
                raise ValueError(
                    f"proof.address_field {field} is not an address field of {name}.leaf_encoding"
                )
        return self

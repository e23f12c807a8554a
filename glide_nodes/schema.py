from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Any, Dict, List, Literal, Optional, Union


class Option(BaseModel):
    name: str
    value: Union[str, int] = ""
    description: Optional[str] = None


class AppInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: Optional[str] = None


class TableInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str

    @model_validator(mode="before")
    @classmethod
    def accept_sdk_props(cls, data: Any) -> Any:
        # SDK table objects carry {props: {table, name}}
        if isinstance(data, dict) and isinstance(data.get("props"), dict):
            props = data["props"]
            return {"id": props.get("table") or data.get("id") or "", "name": props.get("name") or data.get("name") or "Unknown"}
        if isinstance(data, dict) and not data.get("name"):
            return {**data, "name": data.get("id") or "Unknown"}
        return data


class ColumnInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    type: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def flatten_type(cls, v):
        # schema endpoint may return {"kind": "primitive", "value": "string"}
        if isinstance(v, dict):
            return v.get("value") or v.get("kind")
        return v


class QueryPage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    rows: List[Dict[str, Any]] = Field(default_factory=list)
    next: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_token(cls, data: Any) -> Any:
        if isinstance(data, dict) and "next" not in data and "nextStartAt" in data:
            return {**data, "next": data["nextStartAt"]}
        return data


MutationKind = Literal["add-row-to-table", "set-columns-in-row", "delete-row"]


class Mutation(BaseModel):
    kind: MutationKind
    tableName: str
    rowID: Optional[str] = None
    rowIndex: Optional[int] = None
    columnValues: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def one_row_identifier(self):
        # rowID wins when both are given
        if self.rowID and self.rowIndex is not None:
            self.rowIndex = None
        return self

    def to_wire(self) -> dict:
        return self.model_dump(exclude_none=True)


class Credential(BaseModel):
    model_config = ConfigDict(frozen=True)

    secret: str = Field(repr=False)
    environment: Literal["test", "live"] = "test"


class PropertyOption(BaseModel):
    name: str
    value: Any
    action: Optional[str] = None
    resource: Optional[str] = None
    description: Optional[str] = None


class NodeProperty(BaseModel):
    displayName: str
    name: str
    type: Literal["string", "number", "boolean", "options", "multiOptions", "json", "notice"] = "string"
    default: Any = None
    required: bool = False
    description: Optional[str] = None
    options: List[PropertyOption] = Field(default_factory=list)
    typeOptions: Dict[str, Any] = Field(default_factory=dict)
    displayOptions: Dict[str, Dict[str, List[Any]]] = Field(default_factory=dict)


class CredentialRef(BaseModel):
    name: str
    required: bool = True


class NodeDescription(BaseModel):
    displayName: str
    name: str
    version: int = 1
    group: List[str] = Field(default_factory=lambda: ["transform"])
    description: Optional[str] = None
    credentials: List[CredentialRef] = Field(default_factory=list)
    requestDefaults: Dict[str, Any] = Field(default_factory=dict)
    properties: List[NodeProperty] = Field(default_factory=list)

    def get_property(self, name: str) -> Optional[NodeProperty]:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

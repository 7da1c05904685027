"""
SIWE-style sign-in message

The rendered text is what the wallet signs, so field order, labels and line
breaks are a wire contract: any change breaks verification for existing wallets.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

ADDRESS_PLACEHOLDER = "0x..."
HEADER_SUFFIX = " wants you to sign in with your Polkadot account:"


class SiweMessage(BaseModel):
    domain: str
    address: str = ADDRESS_PLACEHOLDER
    statement: Optional[str] = None
    uri: str
    version: str = "1"
    chain_id: str
    nonce: str
    issued_at: str
    expiration_time: Optional[str] = None
    not_before: Optional[str] = None
    request_id: Optional[str] = None
    resources: List[str] = Field(default_factory=list)

    def to_text(self) -> str:
        lines = [f"{self.domain}{HEADER_SUFFIX}", self.address, ""]
        if self.statement:
            lines.extend([self.statement, ""])
        lines.extend(
            [
                f"URI: {self.uri}",
                f"Version: {self.version}",
                f"Chain ID: {self.chain_id}",
                f"Nonce: {self.nonce}",
                f"Issued At: {self.issued_at}",
            ]
        )
        if self.expiration_time:
            lines.append(f"Expiration Time: {self.expiration_time}")
        if self.not_before:
            lines.append(f"Not Before: {self.not_before}")
        if self.request_id:
            lines.append(f"Request ID: {self.request_id}")
        if self.resources:
            lines.append("Resources:")
            lines.extend(f"- {resource}" for resource in self.resources)
        return "\n".join(lines)

    @classmethod
    def parse(cls, text: str) -> Optional["SiweMessage"]:
        """
        Parse a rendered message back into its fields.

        Returns None when the header, address line or any required field is missing.
        """
        lines = text.split("\n")
        if len(lines) < 3 or not lines[0].endswith(HEADER_SUFFIX):
            return None

        fields = {
            "domain": lines[0][: -len(HEADER_SUFFIX)],
            "address": lines[1],
        }
        labels = {
            "URI: ": "uri",
            "Version: ": "version",
            "Chain ID: ": "chain_id",
            "Nonce: ": "nonce",
            "Issued At: ": "issued_at",
            "Expiration Time: ": "expiration_time",
            "Not Before: ": "not_before",
            "Request ID: ": "request_id",
        }

        statement_lines = []
        resources = []
        in_resources = False
        for line in lines[2:]:
            label = next((prefix for prefix in labels if line.startswith(prefix)), None)
            if label is not None:
                fields[labels[label]] = line[len(label):]
                in_resources = False
            elif line == "Resources:":
                in_resources = True
            elif in_resources and line.startswith("- "):
                resources.append(line[2:])
            elif line and "uri" not in fields:
                statement_lines.append(line)

        required = ("domain", "address", "uri", "version", "chain_id", "nonce", "issued_at")
        if any(not fields.get(name) for name in required):
            return None

        if statement_lines:
            fields["statement"] = "\n".join(statement_lines)
        fields["resources"] = resources
        return cls(**fields)

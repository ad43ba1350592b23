"""Audit storage for forge and teardown operations.

Stores and retrieves audit logs in YAML format for compliance and troubleshooting.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional

import yaml

from superkey.models.forge_operation import ForgeOperation
from superkey.models.forged_application import ForgedApplication


class AuditStorage:
    """Audit log storage and retrieval.

    Stores operation audit logs as YAML files organized by year/month.
    Each log carries the operation summary and the ledger it worked on, so an
    orphaned resource can be traced back to the request that created it.

    Storage structure:
        ~/.superkey/audit-logs/
            2025/
                11/
                    operation-op_123.yaml

    Attributes:
        storage_dir: Base directory for audit logs
    """

    def __init__(self, storage_dir: Optional[str] = None) -> None:
        """Initialize audit storage.

        Args:
            storage_dir: Base directory for audit logs (default: ~/.superkey/audit-logs)
        """
        if storage_dir is None:
            storage_dir = str(Path.home() / ".superkey" / "audit-logs")

        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def log_operation(self, operation: ForgeOperation, ledger: ForgedApplication) -> Path:
        """Write an operation and its ledger to audit storage.

        Overwrites an existing log with the same operation ID.

        Returns:
            Path of the written audit file
        """
        year_month_dir = self.storage_dir / str(operation.timestamp.year) / f"{operation.timestamp.month:02d}"
        year_month_dir.mkdir(parents=True, exist_ok=True)

        ledger_data = ledger.to_dict()
        # never persist forged secrets in the audit trail
        ledger_data["result"]["password"] = None

        audit_data = {
            "metadata": {
                "version": "1.0",
                "log_type": f"superkey_{operation.mode.value}",
                "created_at": datetime.utcnow().isoformat() + "Z",
            },
            "operation": {
                "operation_id": operation.operation_id,
                "mode": operation.mode.value,
                "status": operation.status.value,
                "guid": operation.guid,
                "application_type": operation.application_type,
                "source_id": operation.source_id,
                "timestamp": operation.timestamp.isoformat() + "Z",
                "steps": operation.steps,
                "errors": operation.errors,
            },
            "ledger": ledger_data,
        }

        audit_file = year_month_dir / f"operation-{operation.operation_id}.yaml"
        with open(audit_file, "w") as f:
            yaml.dump(audit_data, f, default_flow_style=False, sort_keys=False)

        return audit_file

    def get_operation(self, operation_id: str) -> Optional[dict]:
        """Retrieve operation audit log by ID.

        Returns:
            Audit log dictionary if found, None otherwise
        """
        for audit_file in self.storage_dir.glob(f"*/*/operation-{operation_id}.yaml"):
            with open(audit_file, "r") as f:
                return yaml.safe_load(f)

        return None

    def query_operations(self, guid: Optional[str] = None, since: Optional[datetime] = None) -> list[dict]:
        """Query logged operations, oldest month first.

        Args:
            guid: Only operations on this ledger guid (optional)
            since: Only operations at or after this time (optional)

        Returns:
            List of matching audit logs
        """
        results = []

        for audit_file in sorted(self.storage_dir.glob("*/*/operation-*.yaml")):
            with open(audit_file, "r") as f:
                audit_data = yaml.safe_load(f)

            operation = audit_data["operation"]
            if guid and operation["guid"] != guid:
                continue
            if since and datetime.fromisoformat(operation["timestamp"].rstrip("Z")) < since:
                continue

            results.append(audit_data)

        return results

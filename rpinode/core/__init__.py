"""Core reconciliation and provisioning logic."""

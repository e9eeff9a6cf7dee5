"""
clients — thin async wrappers over the remote APIs.

  • ClickUpClient      — workspaces, lists, tasks, comments (static API token)
  • GraphMailClient    — unreplied/unread inbox triage, single message
  • GraphDriveClient   — OneDrive file discovery + workbook table reads
  • GraphSheetClient   — used-range reads with per-cell fill color
"""

"""Business rules of vaults, memberships, invitations and share links."""

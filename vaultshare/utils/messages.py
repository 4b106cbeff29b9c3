"""
Standardized API messages.
All messages are lazily translated so the caller's locale applies.
"""

from flask_babel import lazy_gettext as _

# Error messages
ERROR_GENERIC = _("The request could not be completed.")
ERROR_NOT_FOUND = _("The requested resource was not found.")
ERROR_PERMISSION_DENIED = _("You do not have permission to perform this action.")
ERROR_INVALID_INPUT = _("Invalid input provided.")
ERROR_CONFLICT = _("The change could not be applied consistently. Please retry.")
ERROR_RATE_LIMITED = _("Too many requests. Please try again later.")
ERROR_REQUIRED_FIELD = _("%(field)s is required.")

# Validation
VALIDATION_INVALID_EMAIL = _("Invalid email format")
VALIDATION_INVALID_ROLE = _("Role must be one of: %(roles)s.")
VALIDATION_INVALID_VAULT_TYPE = _("Vault type must be one of: %(types)s.")
VALIDATION_VAULT_NAME = _("Vault name must be between 1 and 100 characters.")
VALIDATION_INVALID_TAGS = _("Tags must be a list of strings.")
VALIDATION_MAX_VIEWS = _("Maximum views must be a positive whole number.")
VALIDATION_EXPIRY_IN_PAST = _("The expiration date must be in the future.")
VALIDATION_INVALID_DATETIME = _("Invalid expiration date format.")

# Vaults
VAULT_NOT_FOUND = _("Vault not found.")
VAULT_PERSONAL_NO_MEMBERS = _("Personal vaults cannot be shared with other members.")
VAULT_HAS_MEMBERS = _("Remove all other members before making this vault personal.")

# Members
MEMBER_NOT_FOUND = _("Member not found.")
MEMBER_ALREADY_EXISTS = _("This user is already a member of the vault.")
MEMBER_CANNOT_CHANGE_OWNER = _("The vault owner's membership cannot be changed.")
MEMBER_OWNER_CANNOT_LEAVE = _("The vault owner cannot leave the vault.")

# Items
ITEM_NOT_FOUND = _("Item not found.")

# Invitations
INVITATION_NOT_FOUND = _("This invitation is invalid, expired, or has already been accepted.")
INVITATION_ACCEPT_FAILED = _("The invitation could not be accepted. Please retry.")
INVITATION_EMAIL_SUBJECT = _("Invitation to join the vault %(vault)s")
INVITATION_EMAIL_BODY = _(
    "Hello,\n\nYou've been invited to join the vault '%(vault)s' with %(role)s access.\n"
    "Open the link below to accept the invitation:\n\n"
    "%(url)s\n\n"
    "This invitation expires on %(expires)s.\n\n--\nVaultShare"
)

# Share links
SHARE_DENIED_INVALID = _("Invalid share link")
SHARE_DENIED_EXPIRED = _("Share link has expired")
SHARE_DENIED_EXHAUSTED = _("Share link has reached maximum views")
SHARE_DENIED_PASSCODE_REQUIRED = _("Passcode required")
SHARE_DENIED_INVALID_PASSCODE = _("Invalid passcode")

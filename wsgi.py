from vaultshare import create_app, db
from vaultshare.models import Profile, Vault, VaultMember, VaultItem, VaultInvitation, VaultShareLink

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "Profile": Profile,
        "Vault": Vault,
        "VaultMember": VaultMember,
        "VaultItem": VaultItem,
        "VaultInvitation": VaultInvitation,
        "VaultShareLink": VaultShareLink,
    }


if __name__ == '__main__':
    app.run(debug=True)

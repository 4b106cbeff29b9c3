from vaultshare.routes.profile import bp as profile_bp
from vaultshare.routes.vaults import bp as vaults_bp
from vaultshare.routes.members import bp as members_bp
from vaultshare.routes.items import bp as items_bp
from vaultshare.routes.invitations import bp as invitations_bp
from vaultshare.routes.share import bp as share_bp, public_bp as share_public_bp


def register_blueprints(app):
    """Register all blueprints with the Flask app."""
    app.register_blueprint(profile_bp)
    app.register_blueprint(vaults_bp)
    app.register_blueprint(members_bp)
    app.register_blueprint(items_bp)
    app.register_blueprint(invitations_bp)
    app.register_blueprint(share_bp)
    app.register_blueprint(share_public_bp)

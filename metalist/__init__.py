import os
import logging

import click
from flask import Flask, jsonify
from werkzeug.security import generate_password_hash

from metalist.config import FeatureFlags, config_by_name
from metalist.extensions import db, migrate, login_manager, limiter


def create_app(config_name=None, overrides=None):
    """Application factory.

    `overrides` is applied on top of the config class, before the
    feature flags are snapshotted.
    """

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    if overrides:
        app.config.update(overrides)

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Feature flags (read once, never from os.environ per request) ---
    app.extensions["feature_flags"] = FeatureFlags.from_config(app.config)

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    limiter.init_app(app)

    # --- Import models so Alembic can discover them ---
    with app.app_context():
        from metalist import models  # noqa: F401

    # --- Register blueprints ---
    from metalist.blueprints.auth import auth_bp
    from metalist.blueprints.account import account_bp
    from metalist.blueprints.bands import bands_bp
    from metalist.blueprints.releases import releases_bp
    from metalist.blueprints.payments import payments_bp
    from metalist.blueprints.subscribe import subscribe_bp
    from metalist.blueprints.webhooks import webhooks_bp
    from metalist.blueprints.storage import storage_bp
    from metalist.blueprints.demos import demos_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(account_bp)
    app.register_blueprint(bands_bp)
    app.register_blueprint(releases_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(subscribe_bp)
    app.register_blueprint(webhooks_bp)
    app.register_blueprint(storage_bp)
    app.register_blueprint(demos_bp)

    # --- Error handlers (JSON API: never HTML) ---
    register_error_handlers(app)

    # --- CLI commands ---
    register_cli(app)

    # --- Security headers ---
    @app.after_request
    def add_security_headers(response):
        """Add security headers to every response."""
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # Checkout pages run on Stripe; the API itself needs no device access
        response.headers["Permissions-Policy"] = (
            "camera=(), microphone=(), geolocation=(), payment=(self)"
        )
        # API responses never embed or run anything
        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none';"
        )
        # HSTS outside debug only
        if not app.debug:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def register_error_handlers(app):
    """Every error leaves as {"error": ...} with the matching status."""

    messages = {
        400: "Bad request.",
        401: "Unauthorized.",
        403: "Forbidden.",
        404: "Not found.",
        405: "Method not allowed.",
        413: "File too large. Maximum size is 25MB.",
        429: "Too many requests. Slow down and try again.",
    }

    def make_handler(status):
        def handler(e):
            return jsonify({"error": messages[status]}), status
        return handler

    for status in messages:
        app.register_error_handler(status, make_handler(status))

    @app.errorhandler(500)
    def server_error(e):
        db.session.rollback()
        app.logger.error(f"Unhandled error: {getattr(e, 'original_exception', e)}")
        return jsonify({"error": "Internal server error."}), 500


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("seed-demo")
    @click.option("--email", default="leader@metalist.local", help="Leader email")
    @click.option("--password", default="metalist123", help="Leader password")
    def seed_demo(email, password):
        """Create a demo leader + fan, a band, and a release with hosted tracks.

        Usage:
            flask seed-demo
            flask seed-demo --email me@example.com --password s3cret
        """
        from metalist.models.user import User
        from metalist.models.profile import Profile
        from metalist.models.band import Band, BandMember
        from metalist.models.release import Release, Track

        if User.query.filter_by(email=email).first():
            click.echo(f"Demo data already exists for {email}")
            return

        def make_user(user_email, username, first, last):
            user = User(
                email=user_email,
                password_hash=generate_password_hash(password),
            )
            db.session.add(user)
            db.session.flush()
            db.session.add(Profile(
                id=user.id, username=username, first_name=first, last_name=last
            ))
            db.session.flush()
            return user

        # --- 1. Users ---
        leader = make_user(email, "demo_leader", "Demo", "Leader")
        fan = make_user("fan@metalist.local", "demo_fan", "Demo", "Fan")

        # --- 2. Band + leader membership ---
        band = Band(
            user_id=leader.id,
            name="Demo Grinders",
            slug="demo-grinders",
            country="Norway",
            year_formed=2019,
            description="Demo band for local development.",
        )
        db.session.add(band)
        db.session.flush()
        db.session.add(BandMember(
            band_id=band.id,
            profile_id=leader.id,
            name="Demo Leader",
            instrument="Vocals, Guitar",
            role="leader",
            status="approved",
            display_order=0,
        ))

        # --- 3. Release with hosted + embedded tracks ---
        release = Release(
            band_id=band.id,
            title="Frostbitten Demo",
            release_type="demo",
            release_year=2024,
        )
        db.session.add(release)
        db.session.flush()
        for n, title in enumerate(["Intro", "Frostbite", "Ashes"], start=1):
            db.session.add(Track(
                release_id=release.id,
                title=title,
                track_number=n,
                audio_path=f"{band.id}/{release.id}/{n}.mp3" if n > 1 else None,
            ))

        db.session.commit()

        click.echo("")
        click.echo("=" * 60)
        click.echo("Demo data created successfully!")
        click.echo("=" * 60)
        click.echo(f"  Leader:    {email} / {password}")
        click.echo(f"  Fan:       {fan.email} / {password}")
        click.echo(f"  Band:      {band.name} (id: {band.id})")
        click.echo(f"  Release:   {release.title} (id: {release.id})")
        click.echo("=" * 60)

    @app.cli.command("verify-stripe-config")
    def verify_stripe_config():
        """Verify configured Stripe price IDs exist and match the key's mode.

        Uses STRIPE_SECRET_KEY and the STRIPE_*_MONTHLY_PRICE_ID settings.
        """
        import stripe as _stripe

        from metalist.plans import TIER_PRICE_CONFIG_KEYS

        api_key = app.config.get("STRIPE_SECRET_KEY")
        if not api_key:
            click.echo("ERROR: STRIPE_SECRET_KEY is not set.")
            return
        key_mode = "Live" if api_key.startswith("sk_live_") else "Test"
        click.echo(f"Stripe key mode: {key_mode}")
        click.echo(f"Webhook secret:  {'set' if app.config.get('STRIPE_WEBHOOK_SECRET') else '(not set)'}")
        click.echo(f"APP_BASE_URL:    {app.config.get('APP_BASE_URL') or '(not set)'}")
        click.echo(f"Payments:        {'DISABLED' if app.extensions['feature_flags'].payments_disabled else 'enabled'}")
        click.echo("")

        _stripe.api_key = api_key

        for tier, key in TIER_PRICE_CONFIG_KEYS.items():
            price_id = app.config.get(key)
            if not price_id:
                click.echo(f"  {tier}: {key} (not set)")
                continue
            try:
                price = _stripe.Price.retrieve(price_id)
                livemode = getattr(price, "livemode", "?")
                click.echo(f"  {tier}: {price_id}")
                click.echo(f"    exists=True, livemode={livemode}, active={getattr(price, 'active', '?')}")
                if livemode is True and key_mode != "Live":
                    click.echo("    WARNING: This price is Live but your key is Test.")
                elif livemode is False and key_mode == "Live":
                    click.echo("    WARNING: This price is Test but your key is Live.")
            except _stripe.error.InvalidRequestError as e:
                click.echo(f"  {tier}: {price_id}")
                click.echo(f"    ERROR: {e}")

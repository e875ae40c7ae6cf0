from apscheduler.schedulers.background import BackgroundScheduler
import atexit
from datetime import datetime, timedelta
from studio.extensions import db
from studio.services.notification_service import (
    NotificationRelay,
    RelayError,
    send_daily_summary,
)

scheduler = BackgroundScheduler()


def send_tomorrow_summary(app):
    """Push tomorrow's appointment list to the studio chat."""
    started = datetime.now()
    stamp = started.strftime("%Y-%m-%d %H:%M:%S")
    tomorrow = (started + timedelta(days=1)).date()

    with app.app_context():
        try:
            relay = NotificationRelay.from_config(app.config)
            result = send_daily_summary(
                db.session, relay, tomorrow, app.config["STUDIO_NAME"]
            )
            print(f"[SCHEDULER] {stamp} - {result['count']} reservation(s) sent for {tomorrow}")
        except RelayError as e:
            print(f"[SCHEDULER] {stamp} - Summary for {tomorrow} not delivered: {e}")
        except Exception as e:
            db.session.rollback()
            print(f"[SCHEDULER] {stamp} - Summary for {tomorrow} failed: {e}")


def init_scheduler(app):
    """Register the nightly summary job and start the background scheduler."""
    scheduler.add_job(
        send_tomorrow_summary,
        "cron",
        hour=app.config["DAILY_SUMMARY_HOUR"],
        minute=0,
        id="daily_summary",
        args=[app],
        replace_existing=True,
    )

    if scheduler.running:
        print("[SCHEDULER] Already running, job refreshed")
        return

    scheduler.start()
    print(f"[SCHEDULER] Daily summary at {app.config['DAILY_SUMMARY_HOUR']:02d}:00")

    # Stop the worker thread with the process
    atexit.register(lambda: scheduler.shutdown(wait=False))

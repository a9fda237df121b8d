"""Run an RQ worker for the invitation mail queue.

Usage:
  python scripts/run_rq_worker.py            # long running
  python scripts/run_rq_worker.py --burst    # drain the queue and exit

Jobs read `current_app` config and use the Flask-SQLAlchemy session, so the
worker process builds the app and keeps an application context open.
"""

import argparse
import os
import sys

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
  sys.path.insert(0, ROOT)

from app import create_app
import redis
from rq import Worker, Queue


def main(argv=None):
  parser = argparse.ArgumentParser(description='CompétencesPro background worker')
  parser.add_argument('--burst', action='store_true', help='exit once the queue is empty')
  args = parser.parse_args(argv)

  app = create_app()
  redis_url = app.config.get('REDIS_URL')
  if not redis_url:
    app.logger.error('REDIS_URL is not set: jobs run inline, no worker needed')
    return 1

  conn = redis.from_url(redis_url)
  with app.app_context():
    worker = Worker([Queue('default', connection=conn)], connection=conn)
    app.logger.info('RQ worker starting (pid %s, burst=%s)', os.getpid(), args.burst)
    try:
      worker.work(burst=args.burst, with_scheduler=not args.burst,
                  logging_level=app.config.get('LOG_LEVEL', 'INFO'))
    finally:
      app.logger.info('RQ worker exiting (pid %s)', os.getpid())
  return 0


if __name__ == '__main__':
  sys.exit(main())

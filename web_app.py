#!/usr/bin/env python3
"""
Flask admin API for on-demand agent project refreshes.
POST /api/admin/refresh-agent-projects          full scrape + upsert
POST /api/admin/refresh-agent-projects?slug=x   single project scrape + upsert
"""

import logging
import os
from datetime import datetime, timezone
from typing import Callable, Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, request

from cors_config import configure_cors
from sparkfeed.config import IngestSettings
from sparkfeed.pipeline import ProjectPipeline, build_pipeline

# Load environment variables from .env file
load_dotenv()

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[IngestSettings] = None,
    pipeline_factory: Optional[Callable[[], ProjectPipeline]] = None,
) -> Flask:
    settings = settings or IngestSettings.from_env()
    app = Flask(__name__)
    configure_cors(app, settings.cors_origins)

    def _default_pipeline() -> ProjectPipeline:
        pipeline = build_pipeline(settings)
        if settings.ensure_schema:
            pipeline.reconciler.store.ensure_schema()
        return pipeline

    make_pipeline = pipeline_factory or _default_pipeline

    @app.route('/api/admin/refresh-agent-projects', methods=['POST'])
    def refresh_agent_projects():
        """Manual refresh trigger; per-project skips only show up in logs."""
        slug = (request.args.get('slug') or '').strip()
        logger.info("=" * 60)
        logger.info(f"Manual refresh triggered at {datetime.now(timezone.utc).isoformat()}")
        if slug:
            logger.info(f"Single project mode, slug: {slug}")
        logger.info("=" * 60)

        try:
            pipeline = make_pipeline()
            if slug:
                project, result = pipeline.refresh_one(slug)
                if project is None:
                    return jsonify({
                        'success': False,
                        'message': 'Project not found or failed to scrape',
                        'slug': slug,
                    }), 404
                return jsonify({
                    'success': True,
                    'message': 'Single project refreshed',
                    'slug': slug,
                    **result.as_dict(),
                    'project': project.to_dict(),
                })

            result = pipeline.run()
            logger.info(f"Refresh completed: {result.created} new, {result.updated} updated")
            return jsonify({'success': True, 'message': 'Refresh complete', **result.as_dict()})
        except Exception as e:
            logger.error(f"Error refreshing agent projects: {e}", exc_info=True)
            return jsonify({'success': False, 'message': 'Something went wrong...'}), 500

    return app


app = create_app()


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=int(os.environ.get('PORT', '5002')))

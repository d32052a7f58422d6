"""
Flask viewer for the rendered maps.

The pipeline runs once when the app is created; the endpoints serve the
resulting map specifications and render images on request.
"""

import argparse
import logging
from typing import Any, Dict, List, Optional

from flask import Flask, Response, jsonify, render_template_string
import matplotlib.pyplot as plt

from bikeshare_map.config import Config, load_config_from_env
from bikeshare_map.maps.visualizer import MIME_TYPES, MapVisualizer, layer_summary
from bikeshare_map.pipeline import MapPipeline, PipelineResult

logger = logging.getLogger(__name__)

INDEX_TEMPLATE = """<!doctype html>
<title>Docking station maps</title>
{% for name in names %}
<h2>{{ name|title }}</h2>
<img src="/api/maps/{{ name }}/image.png" alt="{{ name }} map" style="max-width:100%">
{% endfor %}
"""


def create_app(result: PipelineResult, config: Optional[Config] = None) -> Flask:
    """Build the viewer around one pipeline result."""
    config = config or load_config_from_env()
    app = Flask(__name__)
    maps = result.maps()
    viz = MapVisualizer(config.map)

    def get_available_maps() -> List[str]:
        return list(maps)

    @app.route("/")
    def index():
        """Render both maps on one page."""
        return render_template_string(INDEX_TEMPLATE, names=get_available_maps())

    @app.route("/api/maps")
    def api_list_maps():
        """API endpoint to list available maps with their layer sizes."""
        listing: Dict[str, Any] = {
            name: {"title": spec.title, "layers": layer_summary(spec)}
            for name, spec in maps.items()
        }
        return jsonify(listing)

    @app.route("/api/maps/<name>")
    def api_map_spec(name: str):
        """API endpoint returning the declarative map description."""
        if name not in maps:
            return jsonify({
                "error": f"Unknown map: {name}",
                "available": get_available_maps(),
            }), 404
        return jsonify(maps[name].to_dict())

    @app.route("/api/maps/<name>/image.<format>")
    def api_map_image(name: str, format: str):
        """API endpoint to render a map image directly."""
        if name not in maps:
            return jsonify({
                "error": f"Unknown map: {name}",
                "available": get_available_maps(),
            }), 404
        if format not in MIME_TYPES:
            return jsonify({"error": f"Unsupported format: {format}"}), 400

        fig, _ax = viz.render(maps[name])
        try:
            image_bytes = viz.to_bytes(fig, format=format, dpi=100)
        finally:
            plt.close(fig)

        return Response(image_bytes, mimetype=MIME_TYPES[format])

    return app


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(description="Serve the docking station maps")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=5000)
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = load_config_from_env()
    result = MapPipeline(config).run()
    create_app(result, config).run(host=args.host, port=args.port)


if __name__ == "__main__":
    main()

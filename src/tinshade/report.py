"""
report.py

Plain-text summary of a composite: the model's metadata and the cost and
resolution of the last wireframe and raster renderings.
"""


def format_reduction(reduction):
    """Describe a reduction factor: "N/A" (0), "Full Resolution" (1) or "N to 1"."""
    reduction = int(reduction)
    if reduction == 0:
        return 'N/A'
    if reduction == 1:
        return 'Full Resolution'
    return f"{reduction:8d} to 1"


def model_and_rendering_report(model, stats, visible_range=None):
    """Build the report text.

    Parameters
    - model: `SurfaceModel`
    - stats: dict with keys 'wireframe_ms', 'wireframe_vertices',
      'wireframe_reduction', 'raster_ms', 'raster_reduction'; a timing of
      None means that rendering has not completed
    - visible_range: (min, max) of the values seen so far, or None
    """
    lines = [
        'Model',
        f"  Name: {model.name}",
        f"  Type: {model.description}",
        f"  Vertices:         {model.vertex_count:8d}",
        f"  Load time(ms):    {int(model.time_to_load_ms):8d}",
        '  Bounds',
        f"    Min X:          {model.get_formatted_x(model.min_x)}",
        f"    Max X:          {model.get_formatted_x(model.max_x)}",
        f"    Min Y:          {model.get_formatted_y(model.min_y)}",
        f"    Max Y:          {model.get_formatted_y(model.max_y)}",
        f"    Min Z:          {model.min_z:11.2f}",
        f"    Max Z:          {model.max_z:11.2f}",
        f"  Area:             {model.area:11.2f}",
        f"  Est. Avg. Spacing:{model.nominal_point_spacing:11.2f}",
        '',
        'Rendering',
        '  Wireframe',
    ]
    if stats.get('wireframe_ms') is not None:
        lines += [
            f"    Vertices:      {stats['wireframe_vertices']:8d}",
            f"    Reduction:     {format_reduction(stats['wireframe_reduction'])}",
            f"    Time(ms):      {int(stats['wireframe_ms']):8d}",
        ]
    else:
        lines.append('    Not Available')

    lines.append('  Raster')
    if stats.get('raster_ms') is not None:
        lines += [
            f"    Reduction:     {format_reduction(stats['raster_reduction'])}",
            f"    Time(ms):      {int(stats['raster_ms']):8d}",
        ]
    else:
        lines.append('    Not Available')

    if visible_range is not None:
        lines += [
            '',
            'Range of visible samples',
            f"    Min:      {visible_range[0]:11.3f}",
            f"    Max:      {visible_range[1]:11.3f}",
        ]
    return '\n'.join(lines) + '\n'

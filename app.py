#!/usr/bin/env python3
"""
Mesh Voxelizer Web Interface

A simple Gradio-based web UI for converting textured 3D meshes to colored voxels.

Run with: python app.py
Then open http://localhost:7860 in your browser
"""

import sys
from pathlib import Path
import tempfile
import trimesh

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

import gradio as gr
from mesh_voxelizer import MeshVoxelizer
from mesh_voxelizer.config import DEFAULT_CONFIG
from mesh_voxelizer.ingestion import trimesh_to_mesh


def process_mesh(
    mesh_file,
    demo_shape: str,
    method: str,
    resolution: int,
    smoothing: int,
    seed: int,
    export_json: bool,
    export_vox: bool
):
    """
    Voxelize an uploaded (or demo) mesh.

    Returns stats text and file paths for downloads.
    """
    voxelizer = MeshVoxelizer(resolution=int(resolution), seed=int(seed))

    try:
        if mesh_file is not None:
            voxelizer.load_mesh(mesh_file)
        elif demo_shape:
            voxelizer.set_mesh(create_demo_mesh(demo_shape))
        else:
            return "Please upload a mesh or pick a demo shape first.", None, None

        method_map = {"Surface Sampling": "surface", "Multi-View Rendering": "multiview"}
        voxelizer.voxelize(
            method=method_map.get(method, "surface"),
            smoothing_iterations=int(smoothing)
        )
    except Exception as e:
        return f"**Error:** {e}", None, None

    info = voxelizer.preview()
    if voxelizer.voxel_count == 0:
        return "No voxels were generated. Try a higher resolution.", None, None

    stats_text = f"""## Voxelization Complete!

| Metric | Value |
|--------|-------|
| Triangles | {info.get('triangle_count', 0):,} |
| Textured | {'yes' if info.get('textured') else 'no'} |
| Voxel Count | {info['voxel_count']:,} |
| Grid Size | {info['grid_size']} |
| Unique Colors | {info['unique_colors']:,} |

**Settings:** {method}, Resolution={voxelizer.resolution}, Smoothing={int(smoothing)}, Seed={int(seed)}
"""

    # Create temp directory for exports
    export_dir = tempfile.mkdtemp(prefix="voxels_")

    json_path = None
    vox_path = None

    if export_json:
        json_path = str(Path(export_dir) / "voxels.json")
        voxelizer.export_json(json_path)

    if export_vox:
        vox_path = str(Path(export_dir) / "voxels.vox")
        try:
            voxelizer.export_vox(vox_path)
        except ValueError as e:
            stats_text += f"\n\n**VOX export skipped:** {e}"
            vox_path = None

    return stats_text, json_path, vox_path


def create_demo_mesh(shape: str):
    """Create a vertex-colored demo mesh with trimesh primitives."""
    if shape == "Sphere":
        geometry = trimesh.creation.icosphere(subdivisions=3, radius=1.0)
        geometry.visual.face_colors = [100, 150, 220, 255]
    elif shape == "Torus":
        geometry = trimesh.creation.torus(major_radius=1.0, minor_radius=0.35)
        geometry.visual.face_colors = [220, 120, 60, 255]
    elif shape == "Capsule":
        geometry = trimesh.creation.capsule(height=1.5, radius=0.5)
        geometry.visual.face_colors = [80, 180, 90, 255]
    else:
        geometry = trimesh.creation.box(extents=(2.0, 1.0, 1.0))
        geometry.visual.face_colors = [200, 60, 60, 255]

    return trimesh_to_mesh(geometry, name=shape.lower())


# Build the Gradio interface
with gr.Blocks(title="Mesh Voxelizer") as app:

    gr.Markdown("""
    # Mesh Voxelizer
    ### Convert Textured 3D Meshes to Colored Voxels

    Upload a GLB, glTF or OBJ file or try a demo shape, adjust the settings, and download your voxels!
    """)

    with gr.Row():
        # Left column - Input
        with gr.Column(scale=1):
            gr.Markdown("### Input Mesh")

            mesh_input = gr.File(
                label="Upload Mesh (.glb, .gltf, .obj)",
                file_types=list(DEFAULT_CONFIG.supported_extensions),
                type="filepath"
            )

            demo_dropdown = gr.Dropdown(
                choices=["Box", "Sphere", "Torus", "Capsule"],
                label="Or try a demo shape"
            )

            gr.Markdown("### Settings")

            method = gr.Dropdown(
                choices=["Surface Sampling", "Multi-View Rendering"],
                value="Surface Sampling",
                label="Method"
            )

            resolution = gr.Slider(
                minimum=4,
                maximum=DEFAULT_CONFIG.max_resolution,
                value=DEFAULT_CONFIG.resolution,
                step=1,
                label="Resolution (voxels along longest axis)"
            )

            smoothing = gr.Slider(
                minimum=0,
                maximum=5,
                value=0,
                step=1,
                label="Smoothing Iterations"
            )

            seed = gr.Number(value=0, precision=0, label="Seed")

            gr.Markdown("### Export Formats")
            with gr.Row():
                export_json = gr.Checkbox(value=True, label="JSON")
                export_vox = gr.Checkbox(value=True, label="VOX")

            generate_btn = gr.Button("Voxelize", variant="primary")

        # Middle column - Results
        with gr.Column(scale=2):
            stats_output = gr.Markdown(
                value="Upload a mesh and click 'Voxelize' to see results."
            )

        # Right column - Downloads
        with gr.Column(scale=1):
            gr.Markdown("### Downloads")

            json_output = gr.File(label="JSON (voxel list)")
            vox_output = gr.File(label="VOX (MagicaVoxel)")

            gr.Markdown("""
            ---
            **Tips:**
            - **Surface Sampling** = fast, averages texture colors
            - **Multi-View Rendering** = visible surfaces only
            - **Smoothing** removes stray voxels and fills pinholes
            """)

    generate_btn.click(
        fn=process_mesh,
        inputs=[
            mesh_input,
            demo_dropdown,
            method,
            resolution,
            smoothing,
            seed,
            export_json,
            export_vox
        ],
        outputs=[stats_output, json_output, vox_output]
    )


if __name__ == "__main__":
    print("\n" + "="*60)
    print("Mesh Voxelizer Web Interface")
    print("="*60)
    print("\nStarting server...")
    print("Open http://localhost:7860 in your browser\n")

    app.launch(
        server_name="0.0.0.0",
        server_port=7860,
        share=False
    )

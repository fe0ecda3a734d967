"""
fracmesh/quality.py
-------------------
Triangle quality metrics for a built Mesh: area, minimum angle and
aspect ratio, computed for the triangle range only.
"""
import numpy as np
import matplotlib.pyplot as plt

# (bad, poor) thresholds
ANGLE_LIMITS = (10.0, 20.0)
ASPECT_LIMITS = (10.0, 3.0)


class MeshQuality:
    """
    Inspector for the triangles of a Mesh.

    Usage:
        inspector = MeshQuality(mesh)
        inspector.print_report()
        inspector.plot_histograms()
    """
    def __init__(self, mesh):
        self.mesh = mesh
        self.ids = np.zeros(0, dtype=int)
        self.areas = np.zeros(0)
        self.min_angles = np.zeros(0)
        self.aspect_ratios = np.zeros(0)
        self._analyzed = False

    def analyze(self):
        """ Computes all metrics in one vectorized pass. """
        cells = self.mesh.regular_cells()
        self.ids = np.array([c.id for c in cells], dtype=int)
        if len(cells) == 0:
            self._analyzed = True
            return

        idx = np.array([c.points for c in cells], dtype=int)
        p1 = self.mesh.vertices[idx[:, 0]]
        p2 = self.mesh.vertices[idx[:, 1]]
        p3 = self.mesh.vertices[idx[:, 2]]

        # Side lengths
        a = np.linalg.norm(p2 - p1, axis=1)
        b = np.linalg.norm(p3 - p2, axis=1)
        c = np.linalg.norm(p1 - p3, axis=1)

        cross = (p2[:, 0] - p1[:, 0]) * (p3[:, 1] - p1[:, 1]) - (p3[:, 0] - p1[:, 0]) * (p2[:, 1] - p1[:, 1])
        self.areas = 0.5 * np.abs(cross)

        # Aspect ratio R / (2 r); 1.0 for an equilateral triangle
        s = 0.5 * (a + b + c)
        with np.errstate(divide='ignore', invalid='ignore'):
            r_in = self.areas / s
            r_circ = a * b * c / (4.0 * self.areas)
            ar = r_circ / (2.0 * r_in)
        self.aspect_ratios = np.where(self.areas > 1e-15, ar, 999.0)

        # Angles by the cosine rule
        angles = []
        for opp, s1, s2 in ((a, b, c), (b, a, c), (c, a, b)):
            denom = 2.0 * s1 * s2
            with np.errstate(divide='ignore', invalid='ignore'):
                cos_t = np.clip((s1**2 + s2**2 - opp**2) / denom, -1.0, 1.0)
            angles.append(np.where(denom > 1e-15, np.degrees(np.arccos(cos_t)), 0.0))
        self.min_angles = np.min(angles, axis=0)

        self._analyzed = True

    def check_degenerate(self, tol=1e-12):
        """ Ids of triangles with area below tol. """
        if not self._analyzed: self.analyze()
        return self.ids[self.areas < tol].tolist()

    def print_report(self):
        """ Prints a summary to stdout. """
        if not self._analyzed: self.analyze()
        mesh = self.mesh
        print(f"--- Mesh Quality ({len(self.ids)} triangles) ---")
        counts = mesh.summary()
        print("   -> " + ", ".join(f"{t.name.lower()}: {n}" for t, n in counts.items()))
        print(f"   -> Well links: {len(mesh.well_links)}  well volume: {mesh.well_volume:.4g}")
        if len(self.ids) == 0:
            return

        print(f"   -> Area range: [{self.areas.min():.2e}, {self.areas.max():.2e}]")

        worst = self.ids[np.argmin(self.min_angles)]
        min_ang = self.min_angles.min()
        print(f"   -> Min angle: {min_ang:.2f} deg (cell {worst})  {self._grade(min_ang, ANGLE_LIMITS, low=True)}")

        worst = self.ids[np.argmax(self.aspect_ratios)]
        max_ar = self.aspect_ratios.max()
        print(f"   -> Max aspect ratio: {max_ar:.2f} (cell {worst})  {self._grade(max_ar, ASPECT_LIMITS)}")

    @staticmethod
    def _grade(val, limits, low=False):
        bad, poor = limits
        if (val < bad) if low else (val > bad):
            return "[!] BAD"
        if (val < poor) if low else (val > poor):
            return "[~] POOR"
        return "[OK]"

    def plot_histograms(self, show=True):
        """ Histograms of minimum angle, aspect ratio and area. Returns the figure. """
        if not self._analyzed: self.analyze()

        fig, ax = plt.subplots(1, 3, figsize=(15, 4))
        panels = [
            (self.min_angles, 'skyblue', "Minimum Angle", "Degrees", ANGLE_LIMITS[1]),
            (self.aspect_ratios, 'lightgreen', "Aspect Ratio", "R / 2r", ASPECT_LIMITS[1]),
            (self.areas, 'salmon', "Triangle Area", "Area", None),
        ]
        for axis, (data, color, title, xlabel, limit) in zip(ax, panels):
            if len(data) == 0:
                continue
            # A constant metric would collapse to a single zero-width bin
            span = np.ptp(data)
            bins = 20 if span > 1e-12 else np.linspace(data[0] - 1e-6, data[0] + 1e-6, 3)
            axis.hist(data, bins=bins, color=color, edgecolor='black')
            axis.set_title(title)
            axis.set_xlabel(xlabel)
            if limit is not None:
                axis.axvline(limit, color='red', linestyle='--')

        plt.tight_layout()
        if show:
            plt.show()
        return fig

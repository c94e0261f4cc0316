"""水理力学解析ソルバー.

  solve_partitioned — 未知/規定の2ブロックに分割した線形系の求解
  solve             — 時間増分 + Newton 反復によるステージ解析

増分制御の流れ（各インクリメント）:
  1. 時刻 t+Δt の境界条件から目標増分 ΔUex, ΔFex を作る
     （ΔUex は未知自由度で 0、ΔFex は規定自由度で 0）。
  2. 反復: アセンブリ → 分割求解 → 積分点状態を確定状態に戻す → 全要素を更新
     → 残差 max|ΔFex - ΔFin|（未知自由度）で判定。
  3. 収束: 増分を加算し、積分点状態を確定し、自由度値を更新して時刻を進める。
     非収束: 自動増分なら Δt を半減して同じ時間区間を再試行する。
"""

from __future__ import annotations

import math
import time
import warnings
from collections.abc import Callable
from dataclasses import dataclass

import numpy as np
import scipy.sparse as sp
import scipy.sparse.linalg as spla

from hmcae.assembly import assemble_system
from hmcae.bc import configure_dofs, get_bc_vals
from hmcae.core.element import Capability
from hmcae.core.errors import AnalysisError, ConfigurationError, Failure, FailureKind
from hmcae.core.results import IncrementRecord, PartitionedSolveResult, StageResult
from hmcae.domain import Domain
from hmcae.output.snapshot import Snapshot, take_snapshot

SCHEMES = ("FE", "ME", "BE")


# ====================================================================
# 分割線形ソルバー
# ====================================================================


def solve_partitioned(
    G: sp.spmatrix,
    DU: np.ndarray,
    DF: np.ndarray,
    nu: int,
) -> PartitionedSolveResult:
    """未知/規定ブロックに分割した線形系を解く.

        [ G11  G12 ] [ U1? ]   [ F1  ]
        [ G21  G22 ] [ U2  ] = [ F2? ]

    U1 = G11⁻¹ (F1 - G12 U2),  F2 = G22 U2 + G21 U1

    Args:
        G: (ndofs, ndofs) 全体行列
        DU: (ndofs,) 本質量増分。DU[nu:] を読み、DU[:nu] に解を書き込む。
        DF: (ndofs,) 自然量増分。DF[:nu] を読み、DF[nu:] に反力を書き込む。
        nu: 未知自由度数

    Returns:
        PartitionedSolveResult: (DU, DF, info)。G11 が特異の場合は
        info["success"] = False で DU[:nu] は NaN。
    """
    ndofs = len(DU)
    info: dict = {"success": True, "nu": nu, "ndofs": ndofs, "message": ""}
    if nu == ndofs:
        warnings.warn("基本境界条件がない（全自由度が未知）", RuntimeWarning, stacklevel=2)

    G = sp.csr_matrix(G)
    U2 = DU[nu:]
    F2 = G[nu:, nu:] @ U2

    if nu > 0:
        G11 = G[:nu, :nu].tocsc()
        rhs = DF[:nu] - G[:nu, nu:] @ U2
        try:
            U1 = spla.splu(G11).solve(rhs)
        except RuntimeError as err:
            U1 = np.full(nu, np.nan)
            info["success"] = False
            info["message"] = f"G11 の分解に失敗: {err}"
        else:
            if not np.all(np.isfinite(U1)):
                info["success"] = False
                info["message"] = "G11 の解が有限でない"
                U1 = np.full(nu, np.nan)
            else:
                F2 = F2 + G[nu:, :nu] @ U1
        DU[:nu] = U1

    DF[nu:] = F2
    return PartitionedSolveResult(DU, DF, info)


# ====================================================================
# 設定
# ====================================================================


@dataclass
class SolverConfig:
    """ステージ解析の設定.

    Attributes:
        time_span: ステージの時間幅（end_time 指定時は無視）
        end_time: ステージの終了時刻
        nincs: 初期増分数（初期 Δt = time_span / nincs）
        maxits: インクリメントあたりの最大反復回数
        autoinc: 自動増分（非収束時に Δt を半減、収束時に 1.5 倍）
        tol: 残差（自然量の最大絶対誤差）の許容値
        nouts: 出力スナップショット数（0 = 出力なし）
        scheme: 予測子-修正子スキーム "FE", "ME", "BE"
        maxfails: 残差が 90% 以上に留まる反復の許容連続回数
        time_tol: 時刻の許容誤差（Δt の下限）
        show_progress: 進捗表示
        verbose: 反復ごとの残差表示
        writer: スナップショットごとに呼ばれるコールバック
    """

    time_span: float = 1.0
    end_time: float | None = None
    nincs: int = 1
    maxits: int = 5
    autoinc: bool = False
    tol: float = 1e-2
    nouts: int = 0
    scheme: str = "FE"
    maxfails: int = 3
    time_tol: float = 1e-9
    show_progress: bool = True
    verbose: bool = False
    writer: Callable[[Snapshot], None] | None = None

    def __post_init__(self) -> None:
        if self.end_time is None and not self.time_span > 0:
            raise ValueError(f"time_span は正値: {self.time_span}")
        if self.nincs < 1:
            raise ValueError(f"nincs は1以上: {self.nincs}")
        if self.maxits < 1:
            raise ValueError(f"maxits は1以上: {self.maxits}")
        if not self.tol > 0:
            raise ValueError(f"tol は正値: {self.tol}")
        if self.nouts < 0:
            raise ValueError(f"nouts は0以上: {self.nouts}")
        if self.scheme not in SCHEMES:
            raise ValueError(f"scheme は {SCHEMES} のいずれか: {self.scheme}")
        if self.maxfails < 1:
            raise ValueError(f"maxfails は1以上: {self.maxfails}")
        if not self.time_tol > 0:
            raise ValueError(f"time_tol は正値: {self.time_tol}")


def round_sig(x: float, digits: int = 3) -> float:
    """有効数字 digits 桁に丸める."""
    if x == 0.0 or not math.isfinite(x):
        return x
    return float(f"{x:.{digits}g}")


# ====================================================================
# 増分制御
# ====================================================================


class _StageRunner:
    """1ステージの増分制御."""

    def __init__(self, domain: Domain, bcs: list, cfg: SolverConfig, result: StageResult) -> None:
        self.domain = domain
        self.bcs = bcs
        self.cfg = cfg
        self.result = result
        self.inc: int | None = None

    def _log(self, msg: str, end: str = "\n") -> None:
        if self.cfg.show_progress:
            print(msg, end=end)

    def _snapshot(self, index: int, increment: int) -> None:
        snap = take_snapshot(self.domain, index, increment)
        self.result.snapshots.append(snap)
        if self.cfg.writer is not None:
            self.cfg.writer(snap)

    def _update_elements(self, dU: np.ndarray, dF: np.ndarray, dt: float) -> None:
        ctx = self.domain.ctx
        for elem in self.domain.elems:
            if elem.has(Capability.UPDATE):
                elem.update(dU, dF, dt, ctx)

    def run(self) -> None:
        domain, cfg, bcs = self.domain, self.cfg, self.bcs
        t = domain.t
        span = cfg.end_time - t if cfg.end_time is not None else cfg.time_span
        if not span > 0:
            raise ConfigurationError(f"終了時刻が現在時刻 {t} 以前: end_time={cfg.end_time}")
        domain.initialize()

        dofs, nu = configure_dofs(domain, bcs)
        ndofs = len(dofs)
        domain.ndofs = ndofs
        self._log(f"  unknown dofs: {nu}")

        ips = domain.ips
        if domain.nincs == 0:
            for dof in dofs:
                dof.value = 0.0
                dof.nat_value = 0.0
            domain.update_loggers()
            if cfg.nouts > 0:
                self._snapshot(0, 0)

        for ip in ips:
            ip.commit()

        tend = t + span
        dt = span / cfg.nincs
        ttol = cfg.time_tol
        dT = span / cfg.nouts if cfg.nouts > 0 else math.inf
        T = t + dT
        iout = domain.nouts

        U = np.array([dof.value for dof in dofs])
        F = np.array([dof.nat_value for dof in dofs])
        dFin = np.zeros(ndofs)

        self.inc = 1
        while t < tend - ttol:
            inc = self.inc
            if cfg.verbose:
                self._log(f"  increment {inc} from t={t:.9g} to t={t + dt:.9g} (dt={dt:.9g}):")

            domain.ctx = domain.ctx.at(t + dt)
            UexN, FexN = get_bc_vals(domain, bcs, t + dt)
            dUex = UexN - U
            dFex = FexN - F
            dUex[:nu] = 0.0
            dFex[nu:] = 0.0

            R = dFex.copy()
            dUa = np.zeros(ndofs)
            dUi = dUex.copy()

            residue = 0.0
            converged = False
            nfails = 0
            its = 0
            lin_msg = ""
            for it in range(1, cfg.maxits + 1):
                its = it
                if it > 1:
                    dUi[:] = 0.0
                lastres = residue
                dt_asm = dt if it == 1 else 0.0

                G, RHS = assemble_system(domain.elems, ndofs, dt_asm, domain.ctx)
                R += RHS

                if cfg.scheme == "FE":
                    info = solve_partitioned(G, dUi, R, nu).info
                else:
                    # 予測子で更新した状態の接線を使う
                    dUp, Rp = dUi.copy(), R.copy()
                    solve_partitioned(G, dUp, Rp, nu)
                    for ip in ips:
                        ip.rollback()
                    self._update_elements(dUa + dUp, np.zeros(ndofs), dt)
                    G2, _ = assemble_system(domain.elems, ndofs, dt_asm, domain.ctx)
                    Gs = G2 if cfg.scheme == "BE" else 0.5 * (G + G2)
                    info = solve_partitioned(Gs, dUi, R, nu).info
                if not info["success"]:
                    lin_msg = info["message"]

                for ip in ips:
                    ip.rollback()

                dFin[:] = 0.0
                self._update_elements(dUa + dUi, dFin, dt)

                residue = float(np.max(np.abs((dFex - dFin)[:nu]))) if nu > 0 else 0.0
                dUa += dUi

                R = dFex - dFin
                R[nu:] = 0.0

                if cfg.verbose:
                    self._log(f"    it {it}  residue: {residue:<10.4e}")

                if residue < cfg.tol:
                    converged = True
                    break
                if math.isnan(residue):
                    break
                if it > 1 and residue > 0.9 * lastres:
                    nfails += 1
                else:
                    nfails = 0
                if nfails == cfg.maxfails:
                    break

            self.result.increments.append(IncrementRecord(inc, t, dt, converged, its, residue))

            if converged:
                U += dUa
                F += dFin
                for ip in ips:
                    ip.commit()
                for i, dof in enumerate(dofs):
                    dof.value += dUa[i]
                    dof.nat_value += dFin[i]

                domain.update_loggers()
                self._log(
                    f"  increment {inc}: t={t + dt:.6g}, dt={dt:.3g}, its={its}, "
                    f"residue={residue:.4e}"
                )

                Tn = t + dt
                if cfg.nouts > 0 and Tn + ttol >= T:
                    iout += 1
                    self._snapshot(iout, domain.nincs + inc)
                    T = Tn - math.fmod(Tn, dT) + dT

                self.inc += 1
                t = Tn

                if cfg.autoinc:
                    dt = round_sig(min(1.5 * dt, span / cfg.nincs))
                remaining = tend - t
                if remaining > ttol:
                    dt = min(dt, remaining)
            else:
                for ip in ips:
                    ip.rollback()
                domain.ctx = domain.ctx.at(t)
                if not cfg.autoinc:
                    if lin_msg:
                        self._fail(f"線形系の求解に失敗 (t={t:.6g}): {lin_msg}", FailureKind.LINEAR_SOLVE)
                    else:
                        self._fail(f"増分が収束しない (t={t:.6g}, dt={dt:.3g}, residue={residue:.4e})")
                    return
                self._log(f"  increment {inc} failed (dt={dt:.3g}, residue={residue:.4e})")
                dt = round_sig(0.5 * dt)
                if dt < ttol:
                    kind = FailureKind.LINEAR_SOLVE if lin_msg else FailureKind.NONCONVERGENCE
                    self._fail(f"Δt が下限 {ttol} を下回った (t={t:.6g})", kind)
                    return

        domain.ctx = domain.ctx.at(t)
        domain.nincs += self.inc - 1
        domain.nouts = iout
        domain.stage += 1
        self.result.success = True
        self.result.t = t

    def _fail(self, message: str, kind: FailureKind = FailureKind.NONCONVERGENCE) -> None:
        self.result.success = False
        self.result.t = self.domain.t
        self.result.failure = Failure(kind, message, increment=self.inc)
        self._log(f"solve: solver did not converge: {message}")


def solve(
    domain: Domain,
    bcs: list,
    config: SolverConfig | None = None,
    **kwargs,
) -> StageResult:
    """1ステージの水理力学（または力学）解析を行う.

    Args:
        domain: 解析領域（ステージ間で状態を保持する）
        bcs: 境界条件のリスト（NodeBC, FaceBC）
        config: 解析設定。None の場合は kwargs から SolverConfig を作る。
        **kwargs: SolverConfig のフィールド

    Returns:
        StageResult: 真偽値は成功/失敗。失敗時は failure に種別とメッセージ。
    """
    cfg = config if config is not None else SolverConfig(**kwargs)
    result = StageResult(success=False, t=domain.t)
    runner = _StageRunner(domain, bcs, cfg, result)

    tic = time.perf_counter()
    if cfg.show_progress:
        print(f"Hydromechanical FE analysis: Stage {domain.stage + 1}")
    try:
        runner.run()
    except AnalysisError as err:
        for ip in domain.ips:
            if ip.backup is not None:
                ip.rollback()
        result.success = False
        result.failure = Failure.from_error(err, increment=runner.inc)
        if cfg.show_progress:
            print(f"solve: {result.failure}")

    if cfg.show_progress:
        elapsed = time.perf_counter() - tic
        print(f"  time spent: {elapsed:.3f} s")
    return result
